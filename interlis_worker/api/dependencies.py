"""Service wiring shared by the API routers.

The services are built once per application from the environment
configuration and stored on app.state; routers fetch them with the
get_services dependency.
"""

import logging
from dataclasses import dataclass

from fastapi import Request

from interlis_worker.common.proxy_utils import log_proxy_settings
from interlis_worker.config import (
    GwpProcessorSettings,
    IlitoolsSettings,
    MapServiceSettings,
    ProfileSettings,
    ProxySettings,
    StorageSettings,
)
from interlis_worker.ilitools import IlitoolsEnvironment, IlitoolsExecutor, ProcessRunner
from interlis_worker.processing import GwpProcessor
from interlis_worker.scheduler import ValidatorService
from interlis_worker.services.map_service import (
    MapServiceUriResolver,
    RouteTemplateMapServiceUriResolver,
)
from interlis_worker.services.profiles import SettingsProfileProvider
from interlis_worker.storage import PhysicalFileProvider
from interlis_worker.validator import Validator

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Long-lived collaborators of the HTTP API."""

    validator_service: ValidatorService
    validator: Validator
    profile_provider: SettingsProfileProvider
    map_service_resolver: MapServiceUriResolver
    storage_settings: StorageSettings
    gwp_settings: GwpProcessorSettings

    def file_provider(self) -> PhysicalFileProvider:
        """A new, uninitialized file provider below the upload root."""
        return PhysicalFileProvider(self.storage_settings.upload_dir)


def build_services() -> AppServices:
    """Build the services from environment configuration."""
    ilitools_settings = IlitoolsSettings()
    proxy_settings = ProxySettings()
    storage_settings = StorageSettings()
    gwp_settings = GwpProcessorSettings()

    log_proxy_settings(proxy_settings.proxy)
    logger.info(
        f"ilivalidator: <{ilitools_settings.ilivalidator_path or 'not configured'}>, "
        f"ili2gpkg: <{ilitools_settings.ili2gpkg_path or 'not configured'}>, "
        f"GeoPackage validation enabled: {ilitools_settings.enable_gpkg_validation}"
    )

    environment = IlitoolsEnvironment.from_settings(ilitools_settings, proxy_settings)
    executor = IlitoolsExecutor(environment, ProcessRunner(ilitools_settings.java_executable))

    def file_provider_factory() -> PhysicalFileProvider:
        return PhysicalFileProvider(storage_settings.upload_dir)

    gwp_processor = GwpProcessor(gwp_settings, executor, file_provider_factory)
    validator = Validator(ilitools_settings, executor, file_provider_factory, gwp_processor)

    return AppServices(
        validator_service=ValidatorService(),
        validator=validator,
        profile_provider=SettingsProfileProvider(ProfileSettings()),
        map_service_resolver=RouteTemplateMapServiceUriResolver(MapServiceSettings()),
        storage_settings=storage_settings,
        gwp_settings=gwp_settings,
    )


def get_services(request: Request) -> AppServices:
    return request.app.state.services
