"""Configuration for the INTERLIS validation worker.

Includes configuration for:
- ilitools installation and invocation (IlitoolsSettings with ILITOOLS_ prefix)
- Outbound proxy handed to the ilitools (ProxySettings, PROXY variable)
- GWP post-processing (GwpProcessorSettings with GWP_ prefix)
- Job working directories (StorageSettings with STORAGE_ prefix)
- Map service route binding (MapServiceSettings with MAPSERVICE_ prefix)
- Available validation profiles (ProfileSettings with PROFILES_ prefix)
- HTTP API server (ApiServerConfig with API_ prefix)

Configuration can be overridden via:
1. Environment variables (e.g., ILITOOLS_TRACE_ENABLED=true, GWP_CONFIG_DIR=/config/gwp)
2. .env file in the current directory
3. Default values in code
"""

from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from interlis_worker.models.domain import Profile

TRANSFER_FILE_EXTENSIONS = (".xtf", ".itf", ".xml")
ZIP_EXTENSION = ".zip"


class IlitoolsSettings(BaseSettings):
    """Installation facts of the ilitools (ilivalidator, ili2gpkg).

    Can be overridden via environment variables with ILITOOLS_ prefix:
    - ILITOOLS_HOME_DIR
    - ILITOOLS_ILIVALIDATOR_PATH
    - ILITOOLS_ILI2GPKG_PATH
    - ILITOOLS_PLUGINS_DIR
    - ILITOOLS_MODEL_REPOSITORY_DIR
    - ILITOOLS_TRACE_ENABLED
    - ILITOOLS_ENABLE_GPKG_VALIDATION

    Attributes:
        home_dir: Installation directory of the ilitools, parent of the default
            plugins and model repository directories
        ilivalidator_path: Path to the ilivalidator jar (empty if not installed)
        ili2gpkg_path: Path to the ili2gpkg jar (empty if not installed)
        plugins_dir: Directory with ilivalidator plugin jars ({home_dir}/plugins)
        model_repository_dir: Local INTERLIS model repository handed to --modeldir
            ({home_dir}/models)
        trace_enabled: Pass --trace to every invocation
        enable_gpkg_validation: Accept GeoPackages and enable ili2gpkg
        verbose_logging: Pass --verbose to validation runs
        java_executable: Java runtime used to start the jars
    """

    model_config = SettingsConfigDict(
        env_prefix="ILITOOLS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    home_dir: Path = Field(default=Path("/ilitools"), description="ilitools installation directory")
    ilivalidator_path: str = Field(default="", description="Path to ilivalidator.jar")
    ili2gpkg_path: str = Field(default="", description="Path to ili2gpkg.jar")
    plugins_dir: Path | None = Field(
        default=None, validate_default=True, description="Plugin jar directory"
    )
    model_repository_dir: Path | None = Field(
        default=None, validate_default=True, description="Local model repository directory"
    )
    trace_enabled: bool = Field(default=False, description="Enable ilitools trace output")
    enable_gpkg_validation: bool = Field(
        default=False, description="Accept GeoPackage uploads and enable ili2gpkg"
    )
    verbose_logging: bool = Field(default=True, description="Verbose ilitools logs")
    java_executable: str = Field(default="java", description="Java runtime executable")

    @field_validator("plugins_dir", "model_repository_dir")
    @classmethod
    def default_below_home_dir(cls, v: Path | None, info: ValidationInfo) -> Path | None:
        if v is not None or "home_dir" not in info.data:
            return v
        folder = "plugins" if info.field_name == "plugins_dir" else "models"
        return info.data["home_dir"] / folder

    @property
    def allowed_file_extensions(self) -> tuple[str, ...]:
        """File extensions accepted for upload."""
        extensions = (*TRANSFER_FILE_EXTENSIONS, ZIP_EXTENSION)
        if self.enable_gpkg_validation:
            extensions = (*extensions, ".gpkg")
        return extensions


class ProxySettings(BaseSettings):
    """Outbound proxy handed to the ilitools via --proxy/--proxyPort.

    Read from the unprefixed PROXY environment variable, e.g.
    PROXY=http://proxy.example.com:8080
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    proxy: str | None = Field(default=None, description="Proxy URL for model repository access")


class GwpProcessorSettings(BaseSettings):
    """Configuration for post-processing after a successful validation.

    The config directory is expected to contain one folder per profile:
    {config_dir}/{profile_id}/{data_gpkg_file_name}
    {config_dir}/{profile_id}/{qgis_project_file_name}
    {config_dir}/{profile_id}/{additional_files_folder_name}/*

    Can be overridden via environment variables with GWP_ prefix:
    - GWP_CONFIG_DIR
    - GWP_ADDITIONAL_FILES_FOLDER_NAME
    - GWP_ZIP_FILE_NAME
    - GWP_DATA_GPKG_FILE_NAME
    - GWP_QGIS_PROJECT_FILE_NAME
    """

    model_config = SettingsConfigDict(
        env_prefix="GWP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_dir: Path | None = Field(default=None, description="Per-profile configuration root")
    additional_files_folder_name: str = Field(
        default="AdditionalFiles", description="Folder whose files are added to the ZIP"
    )
    zip_file_name: str = Field(default="gwp_results_log.zip", description="Result ZIP file name")
    data_gpkg_file_name: str = Field(default="data.gpkg", description="Template GeoPackage name")
    qgis_project_file_name: str = Field(
        default="service.qgs", description="QGIS project handed to the map server"
    )

    @field_validator("zip_file_name")
    @classmethod
    def must_be_zip_log_file(cls, v: str) -> str:
        if not v.lower().endswith("_log.zip"):
            msg = "ZIP file name must end with '_log.zip' to be downloadable"
            raise ValueError(msg)
        return v


class StorageSettings(BaseSettings):
    """Location of the per-job working directories."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    upload_dir: Path = Field(default=Path("/uploads"), description="Root of job directories")


class MapServiceSettings(BaseSettings):
    """Route template used to build map service URLs for a job.

    Example: MAPSERVICE_ROUTE_TEMPLATE=/mapservice/{jobId}/wms
    """

    model_config = SettingsConfigDict(
        env_prefix="MAPSERVICE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    route_template: str | None = Field(default=None, description="Relative map server route")
    job_id_parameter_name: str = Field(default="jobId")


class ProfileSettings(BaseSettings):
    """Validation profiles offered to clients.

    Example: PROFILES_PROFILES='[{"id": "DEFAULT", "titles": {"de": "Standard"}}]'
    """

    model_config = SettingsConfigDict(
        env_prefix="PROFILES_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    profiles: list[Profile] = Field(default_factory=lambda: [Profile(id="DEFAULT")])
    default_profile_id: str = Field(default="DEFAULT")


class ApiServerConfig(BaseSettings):
    """Configuration for the HTTP API server.

    Can be overridden via environment variables with API_ prefix:
    - API_HOST (default: 0.0.0.0)
    - API_PORT (default: 8085)
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8085, ge=1, le=65535, description="Port for the API server")
