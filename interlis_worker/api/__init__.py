"""HTTP API of the validation worker.

Each feature has its own router module, assembled here into a single FastAPI
app whose lifespan runs the job scheduler.

Endpoints:
    GET  /health                 - Health check
    GET  /api/v1/profile         - Available validation profiles
    POST /api/v1/upload          - Upload a file and start a validation job
    GET  /api/v1/status/{job_id} - Job status and download URLs
    GET  /api/v1/download        - Download a log file or the result ZIP
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from interlis_worker.api.dependencies import AppServices, build_services
from interlis_worker.api.download_router import router as download_router
from interlis_worker.api.health_router import router as health_router
from interlis_worker.api.profile_router import router as profile_router
from interlis_worker.api.status_router import router as status_router
from interlis_worker.api.upload_router import router as upload_router
from interlis_worker.common.tracing import TraceIdMiddleware

logger = logging.getLogger(__name__)


def create_app(services: AppServices | None = None) -> FastAPI:
    """Create the API app.

    Args:
        services: Prebuilt services, built from environment configuration
            when omitted
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = services or build_services()
        validator_service = app.state.services.validator_service
        scheduler = asyncio.create_task(validator_service.run(), name="validator-service")
        try:
            yield
        finally:
            await validator_service.shutdown()
            scheduler.cancel()
            await asyncio.gather(scheduler, return_exceptions=True)
            logger.info("Validator service stopped")

    app = FastAPI(title="INTERLIS Validation Worker", lifespan=lifespan)
    app.add_middleware(TraceIdMiddleware)

    app.include_router(health_router)
    app.include_router(profile_router)
    app.include_router(upload_router)
    app.include_router(status_router)
    app.include_router(download_router)

    return app
