"""Job status endpoint polled by clients."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from interlis_worker.api.dependencies import AppServices, get_services
from interlis_worker.models.enums import LogType, Status
from interlis_worker.models.job import StatusResponse
from interlis_worker.storage.file_provider import FileProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


def log_download_url(file_provider: FileProvider, job_id: UUID, log_type: LogType) -> str | None:
    """Download URL of a job artifact, or None if the artifact does not exist."""
    try:
        file_provider.get_log_file(log_type)
    except FileNotFoundError:
        return None
    return f"/api/v1/download?jobId={job_id}&logType={log_type.value}"


@router.get("/status/{job_id}", response_model=StatusResponse)
def get_status(job_id: UUID, services: AppServices = Depends(get_services)):
    """Get the status and the available downloads of a job.

    Raises:
        HTTPException 404: If no job with this id was ever enqueued
    """
    logger.debug(f"Status for job <{job_id}> requested")

    job = services.validator_service.get_job_status_or_default(job_id)
    if job.status == Status.UNKNOWN:
        raise HTTPException(
            status_code=404, detail=f"No job information available for job id <{job_id}>"
        )

    file_provider = services.file_provider()
    file_provider.initialize(job_id)

    xtf_log_url = log_download_url(file_provider, job_id, LogType.XTF)
    json_log_url = None
    if xtf_log_url is not None:
        json_log_url = f"/api/v1/download/json?jobId={job_id}"

    map_service_url = None
    if file_provider.exists(services.gwp_settings.qgis_project_file_name):
        map_service_url = services.map_service_resolver.build_map_service_uri(job_id)

    return StatusResponse(
        job_id=job_id,
        status=job.status,
        status_message=job.status_message,
        log_url=log_download_url(file_provider, job_id, LogType.LOG),
        xtf_log_url=xtf_log_url,
        csv_log_url=log_download_url(file_provider, job_id, LogType.CSV),
        json_log_url=json_log_url,
        geo_json_log_url=log_download_url(file_provider, job_id, LogType.GEOJSON),
        zip_url=log_download_url(file_provider, job_id, LogType.ZIP),
        map_service_url=map_service_url,
    )
