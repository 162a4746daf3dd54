"""Validation work item run by the scheduler for every upload.

Steps:
1. Select the transfer file (extracting uploaded ZIP archives)
2. Check the file extension and, depending on the type, the XML structure
   or the GeoPackage model names
3. Validate with ilivalidator or ili2gpkg
4. Run GWP post-processing on success

Recognised problems with the upload raise JobError so the job ends with a
user-facing summary instead of an opaque error id.
"""

import asyncio
import logging
import zipfile
from collections.abc import Callable
from pathlib import Path
from uuid import UUID
from xml.etree.ElementTree import ParseError, iterparse

from sqlalchemy.exc import SQLAlchemyError

from interlis_worker.config import ZIP_EXTENSION, IlitoolsSettings
from interlis_worker.errors import JobError
from interlis_worker.ilitools.executor import IlitoolsExecutor
from interlis_worker.models.domain import (
    GEOPACKAGE_EXTENSION,
    NamedFile,
    Profile,
    ValidationRequest,
)
from interlis_worker.models.enums import JobErrorKind, LogType
from interlis_worker.processing.geopackage import read_model_names, split_model_names
from interlis_worker.processing.gwp import GwpProcessor
from interlis_worker.storage.file_provider import FileProvider

logger = logging.getLogger(__name__)

XML_EXTENSIONS = (".xtf", ".xml")
CATALOGUE_EXTENSION = ".xml"


class Validator:
    """Validates one uploaded file per job and triggers post-processing.

    Attributes:
        settings: ilitools settings (allowed extensions, verbose logging)
        executor: ilitools façade
        file_provider_factory: Creates an uninitialized file provider per job
        gwp_processor: Post-processing run after a successful validation
    """

    def __init__(
        self,
        settings: IlitoolsSettings,
        executor: IlitoolsExecutor,
        file_provider_factory: Callable[[], FileProvider],
        gwp_processor: GwpProcessor | None = None,
    ):
        self.settings = settings
        self.executor = executor
        self.file_provider_factory = file_provider_factory
        self.gwp_processor = gwp_processor

    async def execute(
        self,
        job_id: UUID,
        transfer_file: NamedFile,
        profile: Profile,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        """Validate an uploaded file stored in the job's working directory.

        Args:
            job_id: The job identifier
            transfer_file: The stored upload; display_name is the name the
                client uploaded it with
            profile: Profile to validate with
            cancel_event: Cooperative cancellation signal

        Raises:
            JobError: If the upload is not acceptable or does not conform to
                its INTERLIS model
            RuntimeError: If the validation was cancelled
        """
        file_provider = self.file_provider_factory()
        file_provider.initialize(job_id)
        home = file_provider.home_directory

        self._check_extension(transfer_file.file_name)

        catalogue_files: list[str] = []
        if transfer_file.file_name.lower().endswith(ZIP_EXTENSION):
            transfer_file, catalogue_files = self._extract_transfer_file(
                Path(transfer_file.file_path), home
            )

        file_path = Path(transfer_file.file_path)
        extension = file_path.suffix.lower()
        logger.info(f"Validating <{transfer_file.display_name}> of job <{job_id}>")

        if extension in XML_EXTENSIONS:
            _check_xml_structure(file_path)

        gpkg_model_names = None
        if extension == GEOPACKAGE_EXTENSION:
            gpkg_model_names = _read_gpkg_model_names(file_path)

        request = ValidationRequest(
            file_name=file_path.name,
            file_path=str(file_path),
            profile=profile,
            log_file_path=str(home / f"{file_path.stem}{LogType.LOG.suffix}"),
            xtf_log_file_path=str(home / f"{file_path.stem}{LogType.XTF.suffix}"),
            csv_log_file_path=str(home / f"{file_path.stem}{LogType.CSV.suffix}"),
            verbose_logging=self.settings.verbose_logging,
            gpkg_model_names=gpkg_model_names,
            additional_catalogue_file_paths=tuple(catalogue_files),
        )

        exit_code = await self.executor.validate(request, cancel_event)

        if cancel_event is not None and cancel_event.is_set():
            msg = f"Validation of job <{job_id}> was cancelled"
            raise RuntimeError(msg)
        if exit_code != 0:
            msg = f"The ilitools validation failed with exit code {exit_code}"
            raise JobError(JobErrorKind.VALIDATION_FAILED, msg)

        if self.gwp_processor is not None:
            await self.gwp_processor.run(job_id, transfer_file, profile, cancel_event)

    def _check_extension(self, file_name: str) -> None:
        extension = Path(file_name).suffix.lower()
        if extension not in self.settings.allowed_file_extensions:
            msg = f"Transfer file extension <{extension}> is not allowed"
            raise JobError(JobErrorKind.UNKNOWN_EXTENSION, msg)

    def _extract_transfer_file(
        self, zip_path: Path, destination: Path
    ) -> tuple[NamedFile, list[str]]:
        """Extract an uploaded archive and pick its transfer file.

        Exactly one non-XML candidate is the transfer file and all XML files
        become additional catalogue files. Without a non-XML candidate a
        single XML file is the transfer file.

        Returns:
            Tuple of (transfer file, catalogue file paths)
        """
        try:
            with zipfile.ZipFile(zip_path) as archive:
                extracted = [
                    Path(archive.extract(info, destination))
                    for info in archive.infolist()
                    if not info.is_dir()
                ]
        except zipfile.BadZipFile as e:
            msg = f"Uploaded archive could not be read: {e}"
            raise JobError(JobErrorKind.TRANSFER_FILE_NOT_FOUND, msg) from e

        root = destination.resolve()
        for path in extracted:
            if root not in path.resolve().parents:
                msg = f"Archive entry <{path}> lies outside of the job directory"
                raise JobError(JobErrorKind.TRANSFER_FILE_NOT_FOUND, msg)

        allowed = [ext for ext in self.settings.allowed_file_extensions if ext != ZIP_EXTENSION]
        candidates = [path for path in extracted if path.suffix.lower() in allowed]
        catalogues = [p for p in candidates if p.suffix.lower() == CATALOGUE_EXTENSION]
        others = [p for p in candidates if p.suffix.lower() != CATALOGUE_EXTENSION]

        if len(others) == 1:
            transfer_path, catalogue_paths = others[0], catalogues
        elif not others and len(catalogues) == 1:
            transfer_path, catalogue_paths = catalogues[0], []
        elif not candidates:
            msg = f"No transfer file with an allowed extension found in <{zip_path.name}>"
            raise JobError(JobErrorKind.TRANSFER_FILE_NOT_FOUND, msg)
        else:
            msg = f"Found {len(candidates)} possible transfer files in <{zip_path.name}>"
            raise JobError(JobErrorKind.MULTIPLE_TRANSFER_FILES, msg)

        logger.info(f"Selected <{transfer_path.name}> from archive <{zip_path.name}>")
        transfer_file = NamedFile(file_path=str(transfer_path))
        return transfer_file, [str(p) for p in catalogue_paths]


def _check_xml_structure(file_path: Path) -> None:
    try:
        for _ in iterparse(file_path):
            pass
    except ParseError as e:
        msg = f"Invalid XML structure in <{file_path.name}>: {e}"
        raise JobError(JobErrorKind.INVALID_XML, msg) from e


def _read_gpkg_model_names(file_path: Path) -> str:
    try:
        model_names = split_model_names(read_model_names(file_path))
    except SQLAlchemyError as e:
        msg = f"Could not read model names from <{file_path.name}>"
        raise JobError(JobErrorKind.GEOPACKAGE, msg) from e

    if not model_names:
        msg = f"No model names found in <{file_path.name}>"
        raise JobError(JobErrorKind.GEOPACKAGE, msg)

    return ";".join(model_names)
