"""Request tracing for the HTTP API.

Every request gets a trace id: the `x-request-id` header set by the reverse
proxy, or a fresh id if the client sent none. The id and the request line are
kept in a context variable while the request is handled, so log records can
be correlated, and the id is echoed in the response header.
"""

import contextvars
from dataclasses import dataclass, replace
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

TRACE_HEADER = "x-request-id"


@dataclass(frozen=True)
class RequestContext:
    """Request currently handled by this task.

    Attributes:
        trace_id: Id correlating all log records of the request
        method: HTTP method
        url: Full request URL
        status_code: Response status, once the response was produced
    """

    trace_id: str
    method: str
    url: str
    status_code: int | None = None


ctx_request: contextvars.ContextVar[RequestContext | None] = contextvars.ContextVar(
    "request", default=None
)


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Binds a RequestContext to each request and returns its trace id."""

    async def dispatch(self, request: Request, call_next):
        context = RequestContext(
            trace_id=request.headers.get(TRACE_HEADER) or uuid4().hex,
            method=request.method,
            url=str(request.url),
        )
        ctx_request.set(context)

        response = await call_next(request)
        ctx_request.set(replace(context, status_code=response.status_code))
        response.headers[TRACE_HEADER] = context.trace_id
        return response
