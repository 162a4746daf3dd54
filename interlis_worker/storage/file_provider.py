"""File staging for validation jobs.

Every job owns one working directory below the upload root. Uploads, tool
logs, the GeoPackage and the result ZIP all live there.
"""

import logging
from pathlib import Path
from typing import BinaryIO, Protocol
from uuid import UUID

from interlis_worker.models.enums import LogType

logger = logging.getLogger(__name__)


class FileProvider(Protocol):
    """Protocol for job-scoped file access."""

    @property
    def home_directory(self) -> Path:
        """Working directory of the current job."""
        ...

    def initialize(self, job_id: UUID) -> None:
        """Scope all following calls to the working directory of job_id."""
        ...

    def get_files(self) -> list[str]:
        """File names in the working directory."""
        ...

    def exists(self, file_name: str) -> bool: ...

    def create_file(self, file_path: str | Path) -> BinaryIO: ...

    def get_log_file(self, log_type: LogType) -> str:
        """Name of the log file of the given type.

        Raises:
            FileNotFoundError: If no such log file exists
        """
        ...


class PhysicalFileProvider:
    """FileProvider backed by directories on the local file system.

    Attributes:
        root_directory: Directory holding one sub directory per job
    """

    def __init__(self, root_directory: Path):
        self.root_directory = Path(root_directory)
        self._home_directory: Path | None = None

    @property
    def home_directory(self) -> Path:
        if self._home_directory is None:
            msg = "File provider is not initialized, call initialize(job_id) first"
            raise RuntimeError(msg)
        return self._home_directory

    def initialize(self, job_id: UUID) -> None:
        self._home_directory = self.root_directory / str(job_id)
        self._home_directory.mkdir(parents=True, exist_ok=True)

    def get_files(self) -> list[str]:
        return sorted(p.name for p in self.home_directory.iterdir() if p.is_file())

    def exists(self, file_name: str) -> bool:
        return (self.home_directory / file_name).is_file()

    def create_file(self, file_path: str | Path) -> BinaryIO:
        """Create (or truncate) a file and open it for binary writing.

        Relative paths are resolved against the job's working directory.
        """
        path = Path(file_path)
        if not path.is_absolute():
            path = self.home_directory / path
        return open(path, "wb")

    def get_log_file(self, log_type: LogType) -> str:
        suffix = log_type.suffix
        for file_name in self.get_files():
            if file_name.lower().endswith(suffix):
                return file_name

        msg = f"No {log_type.value} log file found in {self.home_directory}"
        raise FileNotFoundError(msg)
