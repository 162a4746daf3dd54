"""High-level ilitools operations: validate, import to and export from GeoPackage."""

import asyncio
import logging

from interlis_worker.errors import ToolNotInitializedError, UnsupportedRequestError
from interlis_worker.ilitools import commands
from interlis_worker.ilitools.environment import IlitoolsEnvironment
from interlis_worker.ilitools.process import SENTINEL_EXIT_CODE, ProcessRunner
from interlis_worker.models.domain import ExportRequest, ImportRequest, ValidationRequest

logger = logging.getLogger(__name__)


class IlitoolsExecutor:
    """Selects the ilitool and command for a request and runs it.

    All operations return the exit code of the tool; 0 is the only success.
    Failures while building or running a command are logged and reported as
    SENTINEL_EXIT_CODE so callers can branch on the exit code alone. Unmet
    preconditions (tool not configured, unsupported request) raise.
    """

    def __init__(self, environment: IlitoolsEnvironment, runner: ProcessRunner | None = None):
        self.environment = environment
        self.runner = runner or ProcessRunner()

    async def validate(
        self, request: ValidationRequest, cancel_event: asyncio.Event | None = None
    ) -> int:
        """Validate a transfer file with ilivalidator or a GeoPackage with ili2gpkg.

        Raises:
            ToolNotInitializedError: If the selected tool is not configured
            UnsupportedRequestError: If a GeoPackage request carries catalogue files
        """
        if request.is_geopackage:
            return await self._execute_ili2gpkg_validation(request, cancel_event)
        return await self._execute_ilivalidator(request, cancel_event)

    async def import_to_gpkg(
        self, request: ImportRequest, cancel_event: asyncio.Event | None = None
    ) -> int:
        """Import a transfer file into a dataset of an existing GeoPackage.

        Raises:
            ToolNotInitializedError: If ili2gpkg is not configured
        """
        self._require_ili2gpkg()
        logger.info(
            f"Starting import of <{request.file_path}> into <{request.db_file_path}> using ili2gpkg"
        )

        try:
            command = commands.create_ili2gpkg_import_command(request, self.environment)
            exit_code = await self.runner.run(command, cancel_event)
        except Exception:
            logger.exception(f"Failed to do import with ili2gpkg for <{request.file_path}>")
            return SENTINEL_EXIT_CODE

        logger.info(f"Import completed for <{request.file_path}> with exit code {exit_code}")
        return exit_code

    async def export_from_gpkg(
        self, request: ExportRequest, cancel_event: asyncio.Event | None = None
    ) -> int:
        """Export a GeoPackage dataset as an INTERLIS transfer file.

        Raises:
            ToolNotInitializedError: If ili2gpkg is not configured
        """
        self._require_ili2gpkg()
        logger.info(f"Starting export from <{request.db_file_path}> using ili2gpkg")

        try:
            command = commands.create_ili2gpkg_export_command(request, self.environment)
            exit_code = await self.runner.run(command, cancel_event)
        except Exception:
            logger.exception(f"Failed to execute ili2gpkg export for <{request.db_file_path}>")
            return SENTINEL_EXIT_CODE

        logger.info(f"Export completed from <{request.db_file_path}> with exit code {exit_code}")
        return exit_code

    async def _execute_ilivalidator(
        self, request: ValidationRequest, cancel_event: asyncio.Event | None
    ) -> int:
        if not self.environment.is_ilivalidator_initialized:
            msg = "ilivalidator is not properly initialized"
            raise ToolNotInitializedError(msg)

        logger.info(f"Starting validation of {request.file_name} using ilivalidator")

        try:
            command = commands.create_ilivalidator_command(request, self.environment)
            exit_code = await self.runner.run(command, cancel_event)
        except Exception:
            logger.exception(f"Failed to execute ilivalidator for {request.file_name}")
            return SENTINEL_EXIT_CODE

        logger.info(f"Validation completed for {request.file_name} with exit code {exit_code}")
        return exit_code

    async def _execute_ili2gpkg_validation(
        self, request: ValidationRequest, cancel_event: asyncio.Event | None
    ) -> int:
        self._require_ili2gpkg()
        if request.additional_catalogue_file_paths:
            msg = (
                "Additional catalogue files are not supported for GeoPackage validation, "
                "aborting validation"
            )
            raise UnsupportedRequestError(msg)

        logger.info(f"Starting validation of {request.file_name} using ili2gpkg")

        try:
            command = commands.create_ili2gpkg_validation_command(request, self.environment)
            exit_code = await self.runner.run(command, cancel_event)
        except Exception:
            logger.exception(f"Failed to execute ili2gpkg for {request.file_name}")
            return SENTINEL_EXIT_CODE

        logger.info(f"Validation completed for {request.file_name} with exit code {exit_code}")
        return exit_code

    def _require_ili2gpkg(self) -> None:
        if not self.environment.is_ili2gpkg_initialized:
            msg = "ili2gpkg is not properly initialized"
            raise ToolNotInitializedError(msg)
