"""Enumerations shared by the scheduler, the pipeline and the HTTP surface."""

from enum import Enum


class Status(Enum):
    """Lifecycle states of a validation job.

    Jobs move forward only: ENQUEUED → PROCESSING → one of the terminal states.
    UNKNOWN is never stored; it is what status lookups report for job ids
    that were never enqueued.
    """

    UNKNOWN = "unknown"
    ENQUEUED = "enqueued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completedWithErrors"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def rank(self) -> int:
        """Position in the forward-only lifecycle (terminal states share a rank)."""
        return _STATUS_RANK[self]


TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.COMPLETED_WITH_ERRORS, Status.FAILED})

_STATUS_RANK = {
    Status.UNKNOWN: 0,
    Status.ENQUEUED: 1,
    Status.PROCESSING: 2,
    Status.COMPLETED: 3,
    Status.COMPLETED_WITH_ERRORS: 3,
    Status.FAILED: 3,
}


class LogType(Enum):
    """Downloadable artifacts of a job, keyed by the extension of their `_log` file."""

    LOG = "log"
    XTF = "xtf"
    CSV = "csv"
    JSON = "json"
    GEOJSON = "geojson"
    ZIP = "zip"

    @property
    def suffix(self) -> str:
        return f"_log.{self.value}"


class JobErrorKind(Enum):
    """Recognised failure kinds that end a job as COMPLETED_WITH_ERRORS."""

    UNKNOWN_EXTENSION = "unknown_extension"
    MULTIPLE_TRANSFER_FILES = "multiple_transfer_files"
    TRANSFER_FILE_NOT_FOUND = "transfer_file_not_found"
    GEOPACKAGE = "geopackage"
    INVALID_XML = "invalid_xml"
    VALIDATION_FAILED = "validation_failed"


class PipelineStep(Enum):
    """Post-processing steps that completed for a job."""

    TEMPLATE_COPIED = "template_copied"
    IMPORTED = "imported"
    TRANSLATION_REQUIRED = "translation_required"
    TRANSLATION_DONE = "translation_done"
    MAP_SERVICE_COPIED = "map_service_copied"
    ARCHIVE_CREATED = "archive_created"
