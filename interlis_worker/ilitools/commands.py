"""Command line construction for the ilitools.

Every builder turns a request and an IlitoolsEnvironment into a single
argument string for the Java runtime. Path-valued arguments are wrapped in
double quotes individually, with embedded quotes and backslashes escaped so
the runner can split the string back into the original values. Arguments are
joined with single spaces and the output depends on nothing but the inputs
(and the content of the plugins directory), so commands can be asserted by
exact string comparison.
"""

import logging
from collections.abc import Iterable, Iterator

from interlis_worker.common.proxy_utils import parse_proxy
from interlis_worker.errors import UnsupportedRequestError
from interlis_worker.ilitools.environment import IlitoolsEnvironment
from interlis_worker.models.domain import (
    ExportRequest,
    IlitoolsRequest,
    ImportRequest,
    ValidationRequest,
)

logger = logging.getLogger(__name__)

# Shared by import and export.
_SKIP_VALIDATION_FLAGS = ("--disableValidation", "--skipReferenceErrors", "--skipGeometryErrors")


def quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def join_non_empty(args: Iterable[str | None]) -> str:
    return " ".join(arg for arg in args if arg)


def common_arguments(request: IlitoolsRequest, environment: IlitoolsEnvironment) -> Iterator[str]:
    """Yield the arguments shared by all ilitools invocations, in fixed order.

    Order: --log, --xtflog, --verbose, --proxy, --proxyPort, --trace,
    --modeldir, --metaConfig.
    """
    if request.log_file_path is not None:
        yield f"--log {quote(request.log_file_path)}"
    if request.xtf_log_file_path is not None:
        yield f"--xtflog {quote(request.xtf_log_file_path)}"
    if request.verbose_logging:
        yield "--verbose"

    proxy_host, proxy_port = parse_proxy(environment.proxy)
    if proxy_host:
        yield f"--proxy {proxy_host}"
    if proxy_port is not None:
        yield f"--proxyPort {proxy_port}"

    if environment.trace_enabled:
        yield "--trace"

    yield f"--modeldir {quote(environment.model_repository_dir)}"

    if request.profile is not None:
        yield f"--metaConfig {quote('ilidata:' + request.profile.id)}"


def create_ilivalidator_command(
    request: ValidationRequest, environment: IlitoolsEnvironment
) -> str:
    """Build the command validating a transfer file with ilivalidator."""
    args = ["-jar", quote(environment.ilivalidator_path)]

    plugin_jars = environment.plugin_jars()
    if plugin_jars:
        args.append(f"--plugins {quote(environment.plugins_dir)}")
        logger.debug(f"Added plugins directory with {len(plugin_jars)} JAR files")

    args.append(f"--csvlog {quote(request.csv_log_file_path)}")
    args.extend(common_arguments(request, environment))
    args.append(quote(request.file_path))
    args.extend(quote(path) for path in request.additional_catalogue_file_paths)

    return join_non_empty(args)


def create_ili2gpkg_validation_command(
    request: ValidationRequest, environment: IlitoolsEnvironment
) -> str:
    """Build the command validating a GeoPackage with ili2gpkg.

    Raises:
        UnsupportedRequestError: If the request carries additional catalogue files
    """
    if request.additional_catalogue_file_paths:
        msg = "Additional catalogue files are not supported for GeoPackage validation"
        raise UnsupportedRequestError(msg)

    args = ["-jar", quote(environment.ili2gpkg_path), "--validate"]

    if request.gpkg_model_names:
        args.append(f"--models {quote(request.gpkg_model_names)}")

    args.extend(common_arguments(request, environment))
    args.append(f"--dbfile {quote(request.file_path)}")

    return join_non_empty(args)


def create_ili2gpkg_import_command(request: ImportRequest, environment: IlitoolsEnvironment) -> str:
    """Build the command importing a transfer file into a GeoPackage dataset."""
    args = [
        "-jar",
        quote(environment.ili2gpkg_path),
        "--import",
        *_SKIP_VALIDATION_FLAGS,
        "--importTid",
        "--importBid",
        f"--dataset {quote(request.dataset)}",
        f"--dbfile {quote(request.db_file_path)}",
    ]
    args.extend(common_arguments(request, environment))
    args.append(quote(request.file_path))

    return join_non_empty(args)


def create_ili2gpkg_export_command(request: ExportRequest, environment: IlitoolsEnvironment) -> str:
    """Build the command exporting a GeoPackage dataset as a transfer file."""
    args = [
        "-jar",
        quote(environment.ili2gpkg_path),
        "--export",
        *_SKIP_VALIDATION_FLAGS,
        f"--dataset {quote(request.dataset)}",
        f"--dbfile {quote(request.db_file_path)}",
    ]
    args.extend(common_arguments(request, environment))
    args.append(quote(request.file_path))

    return join_non_empty(args)
