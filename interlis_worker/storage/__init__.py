"""Per-job working directories."""

from interlis_worker.storage.file_provider import FileProvider, PhysicalFileProvider

__all__ = ["FileProvider", "PhysicalFileProvider"]
