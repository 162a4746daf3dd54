"""Upload endpoint starting a validation job."""

import logging
from functools import partial
from pathlib import Path
from uuid import uuid4

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile

from interlis_worker.api.dependencies import AppServices, get_services
from interlis_worker.models.domain import NamedFile
from interlis_worker.models.job import UploadResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")

CHUNK_SIZE = 1024 * 1024


@router.post("/upload", status_code=201, response_model=UploadResponse)
async def upload(
    response: Response,
    file: UploadFile = File(..., description="Transfer file, GeoPackage or ZIP archive"),
    profile: str | None = Form(default=None, description="Profile id, default if omitted"),
    services: AppServices = Depends(get_services),
):
    """Store an uploaded file in a new job directory and queue its validation.

    The file extension is checked by the job itself, so unsupported files
    still get a job whose status explains the problem.

    Returns:
        UploadResponse with the job id and the status URL to poll

    Raises:
        HTTPException 400: If no file name was sent or the profile is unknown
    """
    file_name = Path(file.filename or "").name
    if not file_name:
        raise HTTPException(status_code=400, detail="Form data <file> must have a file name")

    resolved_profile = services.profile_provider.resolve(profile or None)
    if resolved_profile is None:
        raise HTTPException(status_code=400, detail=f"Profile <{profile}> is not available")

    job_id = uuid4()
    file_provider = services.file_provider()
    file_provider.initialize(job_id)

    logger.info(f"Start uploading <{file_name}> for job <{job_id}>")
    with file_provider.create_file(file_name) as destination:
        while chunk := await file.read(CHUNK_SIZE):
            destination.write(chunk)
    logger.info(f"Successfully stored <{file_name}> as job <{job_id}>")

    transfer_file = NamedFile(
        file_path=str(file_provider.home_directory / file_name), display_name=file_name
    )
    services.validator_service.enqueue_job(
        job_id, partial(services.validator.execute, job_id, transfer_file, resolved_profile)
    )

    status_url = f"/api/v1/status/{job_id}"
    response.headers["Location"] = status_url
    return UploadResponse(job_id=job_id, status_url=status_url)
