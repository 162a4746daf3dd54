"""Domain and status models for INTERLIS validation jobs."""

from interlis_worker.models.domain import (
    ExportRequest,
    IlitoolsRequest,
    ImportRequest,
    NamedFile,
    Profile,
    ValidationRequest,
)
from interlis_worker.models.enums import JobErrorKind, LogType, PipelineStep, Status
from interlis_worker.models.job import JobStatus, StatusResponse

__all__ = [
    "Profile",
    "NamedFile",
    "IlitoolsRequest",
    "ValidationRequest",
    "ImportRequest",
    "ExportRequest",
    "Status",
    "LogType",
    "JobErrorKind",
    "PipelineStep",
    "JobStatus",
    "StatusResponse",
]
