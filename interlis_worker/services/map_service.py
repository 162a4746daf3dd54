"""Map service URL generation for a job's QGIS project."""

import logging
import re
from typing import Protocol
from uuid import UUID

from interlis_worker.config import MapServiceSettings

logger = logging.getLogger(__name__)

_ROUTE_PARAMETER = re.compile(r"\{\**([^{}:?=*]+)[^{}]*\}")


class MapServiceUriResolver(Protocol):
    """Protocol for building the relative map service URI of a job."""

    def build_map_service_uri(self, job_id: UUID) -> str | None: ...


class RouteTemplateMapServiceUriResolver:
    """Binds the job id into the map server proxy route template.

    Example: with route template "/mapservice/{jobId}/wms" the job
    f59292d8-... resolves to "/mapservice/f59292d8-.../wms".
    """

    def __init__(self, settings: MapServiceSettings):
        self.settings = settings

    def build_map_service_uri(self, job_id: UUID) -> str | None:
        template = self.settings.route_template
        parameter_name = self.settings.job_id_parameter_name

        if not template:
            logger.info(
                f"No map server route configured. Cannot build map service URL for job <{job_id}>"
            )
            return None

        parameters = _ROUTE_PARAMETER.findall(template)
        if parameter_name not in parameters:
            logger.info(
                f"No parameter {parameter_name} found in route template <{template}>. "
                f"Cannot build map service URL for job <{job_id}>"
            )
            return None

        def bind(match: re.Match) -> str:
            if match.group(1) == parameter_name:
                return str(job_id)
            return ""

        route = _ROUTE_PARAMETER.sub(bind, template)
        route = re.sub(r"/{2,}", "/", route).rstrip("/")
        return route or None
