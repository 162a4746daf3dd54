"""Job status schemas exposed to status pollers."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from interlis_worker.models.enums import Status

_EXAMPLE_JOB_ID = "2e71ae96-e6ad-4b67-b817-f09412d09a2c"


class JobStatus(BaseModel):
    """Current status of a validation job.

    Attributes:
        status: Lifecycle state of the job
        status_message: Human readable, user-safe status message
    """

    model_config = ConfigDict(frozen=True)

    status: Status
    status_message: str = ""

    @classmethod
    def unknown(cls) -> "JobStatus":
        """Status reported for job ids that were never enqueued."""
        return cls(status=Status.UNKNOWN, status_message="")


class StatusResponse(BaseModel):
    """Status endpoint payload.

    Every URL is only set when the corresponding artifact exists in the job's
    working directory.
    """

    job_id: UUID = Field(..., description="Job identifier")
    status: Status
    status_message: str
    log_url: str | None = None
    xtf_log_url: str | None = None
    csv_log_url: str | None = None
    json_log_url: str | None = None
    geo_json_log_url: str | None = None
    zip_url: str | None = None
    map_service_url: str | None = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "job_id": _EXAMPLE_JOB_ID,
                "status": "completedWithErrors",
                "status_message": "Data not conform to INTERLIS model",
                "log_url": f"/api/v1/download?jobId={_EXAMPLE_JOB_ID}&logType=log",
                "xtf_log_url": f"/api/v1/download?jobId={_EXAMPLE_JOB_ID}&logType=xtf",
                "json_log_url": f"/api/v1/download/json?jobId={_EXAMPLE_JOB_ID}",
                "zip_url": None,
                "map_service_url": None,
            }
        },
    }


class UploadResponse(BaseModel):
    """Response from the upload endpoint."""

    job_id: UUID
    status_url: str


class LogCoordinate(BaseModel):
    """Point a log entry refers to, in the coordinate system of the data."""

    x: float
    y: float


class LogEntry(BaseModel):
    """One error, warning or info of the XTF validation log.

    Attributes:
        type: Entry type as written by ilivalidator (Error, Warning, Info, ...)
        message: Log message
        tid: Transfer id of the affected object
        obj_tag: Qualified class name of the affected object
        data_source: Transfer file the object was read from
        line: Line of the affected object in the transfer file
        tech_details: Additional technical details
        geometry: Position of the problem, if known
    """

    model_config = ConfigDict(frozen=True)

    type: str
    message: str
    tid: str | None = None
    obj_tag: str | None = None
    data_source: str | None = None
    line: int | None = None
    tech_details: str | None = None
    geometry: LogCoordinate | None = None
