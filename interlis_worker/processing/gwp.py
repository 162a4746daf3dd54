"""GWP post-processing after a successful validation.

Pipeline:
1. Copy the profile's template GeoPackage into the job directory
2. Import the transfer file (dataset "Data") and the XTF log (dataset "Logs")
3. Check whether the imported baskets use models outside the template
4. If so, export dataset "Data" as a translated transfer file
5. Copy the profile's QGIS project for the map service
6. Assemble the result ZIP

Steps 1-5 are best-effort: a failure is logged and only that step's output is
missing from the ZIP. Failures while assembling the ZIP propagate.
"""

import asyncio
import logging
import shutil
import zipfile
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from interlis_worker.config import GwpProcessorSettings
from interlis_worker.ilitools.executor import IlitoolsExecutor
from interlis_worker.ilitools.process import SENTINEL_EXIT_CODE
from interlis_worker.models.domain import ExportRequest, ImportRequest, NamedFile, Profile
from interlis_worker.models.enums import LogType, PipelineStep
from interlis_worker.processing.geopackage import (
    basket_topics_not_in_models,
    read_basket_topics,
    read_model_names,
)
from interlis_worker.storage.file_provider import FileProvider

logger = logging.getLogger(__name__)

DATA_DATASET = "Data"
LOGS_DATASET = "Logs"
TRANSLATED_SUFFIX = "_translated.xtf"
LOG_STEM_SUFFIX = "_log"


@dataclass
class PipelineResult:
    """Steps completed by one post-processing run.

    Attributes:
        completed: Steps that finished successfully
        archive_path: Path of the result ZIP, if it was written
    """

    completed: set[PipelineStep] = field(default_factory=set)
    archive_path: Path | None = None

    def has(self, step: PipelineStep) -> bool:
        return step in self.completed


def translated_transfer_file(home_directory: Path, transfer_file: NamedFile) -> NamedFile:
    """Location and display name of the translated export of a transfer file."""
    file_name = f"{Path(transfer_file.file_name).stem}{TRANSLATED_SUFFIX}"
    display_name = f"{Path(transfer_file.display_name).stem}{TRANSLATED_SUFFIX}"
    return NamedFile(file_path=str(home_directory / file_name), display_name=display_name)


class GwpProcessor:
    """Enriches validation results with a GeoPackage, translation and map service.

    Attributes:
        settings: Post-processing configuration (config directory, file names)
        executor: ilitools façade used for GeoPackage import and export
        file_provider_factory: Creates an uninitialized file provider per run
    """

    def __init__(
        self,
        settings: GwpProcessorSettings,
        executor: IlitoolsExecutor,
        file_provider_factory: Callable[[], FileProvider],
    ):
        self.settings = settings
        self.executor = executor
        self.file_provider_factory = file_provider_factory

    async def run(
        self,
        job_id: UUID,
        transfer_file: NamedFile,
        profile: Profile,
        cancel_event: asyncio.Event | None = None,
    ) -> PipelineResult:
        """Run post-processing for a validated transfer file.

        Args:
            job_id: The job identifier
            transfer_file: The validated transfer file in the job directory
            profile: Profile selecting the configuration folder
            cancel_event: Cooperative cancellation signal; remaining steps are
                skipped once it is set

        Returns:
            PipelineResult listing the completed steps

        Raises:
            OSError: If the result ZIP cannot be written
        """
        file_provider = self.file_provider_factory()
        file_provider.initialize(job_id)
        result = PipelineResult()

        profile_dir = self._profile_config_dir(profile)
        if profile_dir is None:
            logger.info(
                f"No configuration directory found for profile <{profile.id}>. "
                f"Skipping GWP processing for job <{job_id}>"
            )
        else:
            await self._build_geopackage(
                job_id, file_provider, transfer_file, profile, profile_dir, result, cancel_event
            )

        if _is_cancelled(cancel_event):
            logger.info(f"Post-processing of job <{job_id}> cancelled, ZIP not created")
            return result

        result.archive_path = self._create_zip(job_id, file_provider, transfer_file, profile_dir)
        result.completed.add(PipelineStep.ARCHIVE_CREATED)
        return result

    async def _build_geopackage(
        self,
        job_id: UUID,
        file_provider: FileProvider,
        transfer_file: NamedFile,
        profile: Profile,
        profile_dir: Path,
        result: PipelineResult,
        cancel_event: asyncio.Event | None,
    ) -> None:
        data_gpkg_path = self._try_copy_template_gpkg(profile_dir, file_provider)
        if data_gpkg_path is None:
            logger.warning(
                f"Template GeoPackage for profile <{profile.id}> could not be copied. "
                f"Skipping GWP GeoPackage creation for job <{job_id}>"
            )
            return
        result.completed.add(PipelineStep.TEMPLATE_COPIED)

        if _is_cancelled(cancel_event):
            return

        transfer_exit_code = await self._import_transfer_file(
            data_gpkg_path, transfer_file, cancel_event
        )
        log_exit_code = await self._import_log(file_provider, data_gpkg_path, cancel_event)

        if transfer_exit_code != 0 or log_exit_code != 0:
            data_gpkg_path.unlink(missing_ok=True)
            logger.warning(
                "Importing transfer file or log file to GeoPackage failed for profile "
                f"<{profile.id}>. "
                f"Deleting GeoPackage again for job <{job_id}>"
            )
            return
        result.completed.add(PipelineStep.IMPORTED)

        if self._is_translation_needed(data_gpkg_path):
            result.completed.add(PipelineStep.TRANSLATION_REQUIRED)
            if not _is_cancelled(cancel_event):
                exit_code = await self._create_translated_transfer_file(
                    file_provider, data_gpkg_path, transfer_file, profile, cancel_event
                )
                if exit_code == 0:
                    result.completed.add(PipelineStep.TRANSLATION_DONE)
                else:
                    logger.warning(f"Export of translated transfer file failed for job <{job_id}>")

        if _is_cancelled(cancel_event):
            return

        if self._try_copy_qgis_service_file(profile_dir, file_provider, profile):
            result.completed.add(PipelineStep.MAP_SERVICE_COPIED)

    def _profile_config_dir(self, profile: Profile) -> Path | None:
        if self.settings.config_dir is None:
            return None
        profile_dir = self.settings.config_dir / profile.id
        return profile_dir if profile_dir.is_dir() else None

    def _try_copy_template_gpkg(
        self, profile_dir: Path, file_provider: FileProvider
    ) -> Path | None:
        template_path = profile_dir / self.settings.data_gpkg_file_name
        if not template_path.is_file():
            logger.warning(f"No template GeoPackage file found at <{template_path}>")
            return None

        data_gpkg_path = file_provider.home_directory / self.settings.data_gpkg_file_name
        try:
            with template_path.open("rb") as source:
                with file_provider.create_file(data_gpkg_path) as destination:
                    shutil.copyfileobj(source, destination)
        except OSError as e:
            logger.error(f"Failed to copy template GeoPackage <{template_path}>: {e}")
            data_gpkg_path.unlink(missing_ok=True)
            return None

        return data_gpkg_path

    async def _import_transfer_file(
        self,
        data_gpkg_path: Path,
        transfer_file: NamedFile,
        cancel_event: asyncio.Event | None,
    ) -> int:
        request = ImportRequest(
            file_name=transfer_file.file_name,
            file_path=transfer_file.file_path,
            db_file_path=str(data_gpkg_path),
            dataset=DATA_DATASET,
        )
        return await self.executor.import_to_gpkg(request, cancel_event)

    async def _import_log(
        self, file_provider: FileProvider, data_gpkg_path: Path, cancel_event: asyncio.Event | None
    ) -> int:
        try:
            log_file_name = file_provider.get_log_file(LogType.XTF)
        except FileNotFoundError:
            logger.warning("No XTF log file found, cannot import log into GeoPackage")
            return SENTINEL_EXIT_CODE

        request = ImportRequest(
            file_name=log_file_name,
            file_path=str(file_provider.home_directory / log_file_name),
            db_file_path=str(data_gpkg_path),
            dataset=LOGS_DATASET,
        )
        return await self.executor.import_to_gpkg(request, cancel_event)

    def _is_translation_needed(self, data_gpkg_path: Path) -> bool:
        try:
            models = read_model_names(data_gpkg_path)
            topics = read_basket_topics(data_gpkg_path)
        except SQLAlchemyError as e:
            logger.warning(f"Could not read models and baskets from <{data_gpkg_path}>: {e}")
            return False

        missing_models = basket_topics_not_in_models(topics, models)
        if missing_models:
            logger.info(f"Baskets of models {missing_models} need translation")
        return bool(missing_models)

    async def _create_translated_transfer_file(
        self,
        file_provider: FileProvider,
        data_gpkg_path: Path,
        transfer_file: NamedFile,
        profile: Profile,
        cancel_event: asyncio.Event | None,
    ) -> int:
        translated = translated_transfer_file(file_provider.home_directory, transfer_file)
        request = ExportRequest(
            file_name=translated.file_name,
            file_path=translated.file_path,
            profile=profile,
            db_file_path=str(data_gpkg_path),
            dataset=DATA_DATASET,
        )
        return await self.executor.export_from_gpkg(request, cancel_event)

    def _try_copy_qgis_service_file(
        self, profile_dir: Path, file_provider: FileProvider, profile: Profile
    ) -> bool:
        service_file = profile_dir / self.settings.qgis_project_file_name
        if not service_file.is_file():
            return False

        try:
            logger.info(f"Copying QGIS project file for profile <{profile.id}>")
            destination = file_provider.home_directory / self.settings.qgis_project_file_name
            shutil.copyfile(service_file, destination)
        except OSError:
            logger.exception(f"Failed to copy QGIS project file for profile <{profile.id}>")
            return False

        return True

    def _create_zip(
        self,
        job_id: UUID,
        file_provider: FileProvider,
        transfer_file: NamedFile,
        profile_dir: Path | None,
    ) -> Path:
        logger.info(f"Creating ZIP for job <{job_id}>")

        files_to_zip = self.get_files_to_zip(file_provider, transfer_file, profile_dir)
        zip_path = file_provider.home_directory / self.settings.zip_file_name

        with file_provider.create_file(zip_path) as zip_stream, zipfile.ZipFile(
            zip_stream, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
        ) as archive:
            for file_to_zip in files_to_zip:
                if not Path(file_to_zip.file_path).is_file():
                    logger.warning(f"File <{file_to_zip.file_path}> no longer exists, not zipped")
                    continue
                archive.write(file_to_zip.file_path, arcname=file_to_zip.display_name)
                logger.debug(f"Added file <{file_to_zip.display_name}> to ZIP for job <{job_id}>")

        logger.info(f"Successfully created ZIP for job <{job_id}>")
        return zip_path

    def get_files_to_zip(
        self, file_provider: FileProvider, transfer_file: NamedFile, profile_dir: Path | None
    ) -> list[NamedFile]:
        """Archive manifest in insertion order: logs, additional files, GeoPackage, translation."""
        files_to_zip = self._get_log_files_to_zip(file_provider)
        files_to_zip.extend(self._get_additional_files_to_zip(profile_dir))

        gpkg_name = self.settings.data_gpkg_file_name
        data_gpkg_path = file_provider.home_directory / gpkg_name
        if data_gpkg_path.is_file():
            files_to_zip.append(NamedFile(file_path=str(data_gpkg_path), display_name=gpkg_name))

        translated = translated_transfer_file(file_provider.home_directory, transfer_file)
        if Path(translated.file_path).is_file():
            files_to_zip.append(translated)

        return files_to_zip

    def _get_log_files_to_zip(self, file_provider: FileProvider) -> list[NamedFile]:
        log_files = []
        for file_name in file_provider.get_files():
            path = Path(file_name)
            if file_name == self.settings.zip_file_name:
                continue
            if not path.stem.lower().endswith(LOG_STEM_SUFFIX):
                continue
            log_files.append(
                NamedFile(
                    file_path=str(file_provider.home_directory / file_name),
                    display_name=f"log{path.suffix}",
                )
            )
        return log_files

    def _get_additional_files_to_zip(self, profile_dir: Path | None) -> list[NamedFile]:
        if profile_dir is None:
            return []

        additional_files_dir = profile_dir / self.settings.additional_files_folder_name
        if not additional_files_dir.is_dir():
            return []

        return [
            NamedFile(file_path=str(path))
            for path in sorted(additional_files_dir.iterdir())
            if path.is_file()
        ]


def _is_cancelled(cancel_event: asyncio.Event | None) -> bool:
    return cancel_event is not None and cancel_event.is_set()
