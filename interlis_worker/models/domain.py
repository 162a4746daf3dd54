"""Core domain models for INTERLIS validation jobs.

These models are immutable value objects describing profiles, files and the
requests handed to the external ilitools (ilivalidator, ili2gpkg).

Includes models for:
- Profiles selecting the model/schema rules and post-processing configuration
- Files carrying a separate display name for downloads and archive entries
- Tool requests for validation, GeoPackage import and GeoPackage export
"""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

GEOPACKAGE_EXTENSION = ".gpkg"


class Profile(BaseModel):
    """A named configuration bundle for validation and post-processing.

    Attributes:
        id: Profile identifier, used for the ilidata meta configuration and
            as the name of the profile's configuration folder
        titles: Optional localized display titles keyed by language code
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1, description="Profile identifier")
    titles: dict[str, str] = Field(default_factory=dict, description="Localized titles")


class NamedFile(BaseModel):
    """A file on disk with a separate display name.

    The display name is only used for archive entry names and download file
    names; it defaults to the file name of the path.

    Attributes:
        file_path: Path of the file on disk
        display_name: Name shown to users
    """

    model_config = ConfigDict(frozen=True)

    file_path: str
    display_name: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_display_name(cls, data):
        if isinstance(data, dict) and data.get("file_path") and not data.get("display_name"):
            data = {**data, "display_name": Path(data["file_path"]).name}
        return data

    @property
    def file_name(self) -> str:
        return Path(self.file_path).name


class IlitoolsRequest(BaseModel):
    """Base request for one invocation of an ilitool.

    Attributes:
        file_name: Name of the file to be processed
        file_path: Full path of the file to be processed
        profile: Profile with which the processing should be done
        log_file_path: Path of the plain text log file
        xtf_log_file_path: Path of the XTF log file
        verbose_logging: Whether the tool should log verbosely
    """

    model_config = ConfigDict(frozen=True)

    file_name: str
    file_path: str
    profile: Profile | None = None
    log_file_path: str | None = None
    xtf_log_file_path: str | None = None
    verbose_logging: bool = False


class ValidationRequest(IlitoolsRequest):
    """Request to validate an INTERLIS transfer file or a GeoPackage."""

    csv_log_file_path: str
    gpkg_model_names: str | None = Field(
        default=None, description="Semicolon separated model names (GeoPackage only)"
    )
    additional_catalogue_file_paths: tuple[str, ...] = ()

    @property
    def is_geopackage(self) -> bool:
        return self.file_name.lower().endswith(GEOPACKAGE_EXTENSION)


class ImportRequest(IlitoolsRequest):
    """Request to import a transfer file into a dataset of an existing GeoPackage."""

    db_file_path: str = Field(min_length=1)
    dataset: str = Field(min_length=1)


class ExportRequest(IlitoolsRequest):
    """Request to export a dataset of a GeoPackage as an INTERLIS transfer file."""

    db_file_path: str = Field(min_length=1)
    dataset: str = Field(min_length=1)
