"""Download of job artifacts (logs, the derived JSON log and the result ZIP)."""

import logging
from uuid import UUID
from xml.etree.ElementTree import ParseError

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from interlis_worker.api.dependencies import AppServices, get_services
from interlis_worker.models.enums import LogType, Status
from interlis_worker.models.job import LogEntry
from interlis_worker.processing.xtf_log import read_xtf_log
from interlis_worker.storage.file_provider import FileProvider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


def _job_file_provider(job_id: UUID, services: AppServices) -> FileProvider:
    job = services.validator_service.get_job_status_or_default(job_id)
    if job.status == Status.UNKNOWN:
        raise HTTPException(status_code=404, detail=f"No job with id <{job_id}>")

    file_provider = services.file_provider()
    file_provider.initialize(job_id)
    return file_provider


def _log_file_name(file_provider: FileProvider, job_id: UUID, log_type: LogType) -> str:
    try:
        return file_provider.get_log_file(log_type)
    except FileNotFoundError as e:
        logger.info(f"No {log_type.value} log file for job <{job_id}>")
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.get("/download")
def download(
    job_id: UUID = Query(..., alias="jobId"),
    log_type: LogType = Query(..., alias="logType"),
    services: AppServices = Depends(get_services),
):
    """Download an artifact of a job under its stored file name.

    Raises:
        HTTPException 404: If the job or the artifact does not exist
    """
    file_provider = _job_file_provider(job_id, services)
    file_name = _log_file_name(file_provider, job_id, log_type)

    logger.info(f"Download of <{file_name}> for job <{job_id}> requested")
    return FileResponse(file_provider.home_directory / file_name, filename=file_name)


@router.get("/download/json", response_model=list[LogEntry])
def download_json_log(
    job_id: UUID = Query(..., alias="jobId"),
    services: AppServices = Depends(get_services),
):
    """Get the entries of the job's XTF log as JSON.

    Raises:
        HTTPException 404: If the job or its XTF log does not exist
        HTTPException 500: If the XTF log cannot be parsed
    """
    file_provider = _job_file_provider(job_id, services)
    file_name = _log_file_name(file_provider, job_id, LogType.XTF)

    try:
        return read_xtf_log(file_provider.home_directory / file_name)
    except ParseError as e:
        logger.exception(f"XTF log <{file_name}> of job <{job_id}> could not be read")
        raise HTTPException(status_code=500, detail="XTF log could not be read") from e
