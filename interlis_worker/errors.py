"""Error types raised by the validation pipeline."""

from interlis_worker.models.enums import JobErrorKind


class JobError(Exception):
    """A recognised failure that ends a job with a user-facing summary.

    The message is shown to users as detail, so it must not contain
    internal information.

    Attributes:
        kind: Failure category selecting the user-facing summary
    """

    def __init__(self, kind: JobErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


class IlitoolsError(Exception):
    """Base exception for ilitools invocation errors."""


class ToolNotInitializedError(IlitoolsError):
    """Raised when a required ilitool is not configured."""


class UnsupportedRequestError(IlitoolsError):
    """Raised when a request asks for something the selected tool cannot do."""


class InvalidStatusTransitionError(Exception):
    """Raised when a job status update would move a job backwards."""
