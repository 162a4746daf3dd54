"""Unit tests for the validation work item."""

import asyncio
import zipfile
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import NullPool

from interlis_worker.config import IlitoolsSettings
from interlis_worker.errors import JobError
from interlis_worker.ilitools.executor import IlitoolsExecutor
from interlis_worker.models.domain import NamedFile, Profile
from interlis_worker.models.enums import JobErrorKind
from interlis_worker.processing.gwp import GwpProcessor
from interlis_worker.storage.file_provider import PhysicalFileProvider
from interlis_worker.validator import Validator

PROFILE = Profile(id="DEFAULT")
VALID_XTF = '<?xml version="1.0"?><TRANSFER xmlns="http://www.interlis.ch/INTERLIS2.3"/>'


@pytest.fixture
def job_id():
    return uuid4()


@pytest.fixture
def home(tmp_path, job_id):
    job_dir = tmp_path / str(job_id)
    job_dir.mkdir()
    return job_dir


@pytest.fixture
def executor():
    mock_executor = AsyncMock(spec=IlitoolsExecutor)
    mock_executor.validate.return_value = 0
    return mock_executor


@pytest.fixture
def gwp_processor():
    return AsyncMock(spec=GwpProcessor)


def create_validator(tmp_path, executor, gwp_processor, enable_gpkg_validation=False):
    settings = IlitoolsSettings(
        ilivalidator_path="/path/to/ilivalidator.jar",
        enable_gpkg_validation=enable_gpkg_validation,
        verbose_logging=True,
    )
    return Validator(settings, executor, lambda: PhysicalFileProvider(tmp_path), gwp_processor)


def stored_file(home, name, content=VALID_XTF, display_name=None):
    path = home / name
    path.write_text(content)
    return NamedFile(file_path=str(path), display_name=display_name or name)


def stored_zip(home, entries):
    path = home / "upload.zip"
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in entries.items():
            archive.writestr(name, content)
    return NamedFile(file_path=str(path))


def execute(validator, job_id, transfer_file, cancel_event=None):
    asyncio.run(validator.execute(job_id, transfer_file, PROFILE, cancel_event))


def raised_kind(validator, job_id, transfer_file):
    with pytest.raises(JobError) as exc_info:
        execute(validator, job_id, transfer_file)
    return exc_info.value.kind


class TestTransferFile:
    """Tests for validating a single uploaded transfer file."""

    def test_builds_validation_request(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test the validation request is built from the stored file."""
        validator = create_validator(tmp_path, executor, gwp_processor)
        transfer_file = stored_file(home, "abc.xtf", display_name="Gemeinde.xtf")

        execute(validator, job_id, transfer_file)

        request = executor.validate.call_args.args[0]
        assert request.file_name == "abc.xtf"
        assert request.file_path == str(home / "abc.xtf")
        assert request.profile == PROFILE
        assert request.log_file_path == str(home / "abc_log.log")
        assert request.xtf_log_file_path == str(home / "abc_log.xtf")
        assert request.csv_log_file_path == str(home / "abc_log.csv")
        assert request.verbose_logging is True
        assert request.additional_catalogue_file_paths == ()
        gwp_processor.run.assert_awaited_once_with(job_id, transfer_file, PROFILE, None)

    def test_itf_skips_xml_check(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test INTERLIS 1 files skip the XML check."""
        validator = create_validator(tmp_path, executor, gwp_processor)

        execute(validator, job_id, stored_file(home, "data.itf", content="SCNT\nETAB"))

        executor.validate.assert_awaited_once()

    @pytest.mark.parametrize("name", ["script.cmd", "data.gpkg", "noextension"])
    def test_unknown_extension(self, tmp_path, home, job_id, executor, gwp_processor, name):
        """Test disallowed extensions are rejected."""
        validator = create_validator(tmp_path, executor, gwp_processor)

        kind = raised_kind(validator, job_id, stored_file(home, name))

        assert kind == JobErrorKind.UNKNOWN_EXTENSION
        executor.validate.assert_not_called()

    @pytest.mark.parametrize("name", ["broken.xtf", "broken.xml"])
    def test_invalid_xml(self, tmp_path, home, job_id, executor, gwp_processor, name):
        """Test malformed XML is rejected."""
        validator = create_validator(tmp_path, executor, gwp_processor)

        kind = raised_kind(validator, job_id, stored_file(home, name, content="<TRANSFER>"))

        assert kind == JobErrorKind.INVALID_XML

    def test_failed_validation(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test a failed validation skips post-processing."""
        executor.validate.return_value = 1
        validator = create_validator(tmp_path, executor, gwp_processor)

        kind = raised_kind(validator, job_id, stored_file(home, "test.xtf"))

        assert kind == JobErrorKind.VALIDATION_FAILED
        gwp_processor.run.assert_not_called()

    def test_cancelled_validation(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test a cancelled validation raises."""
        executor.validate.return_value = -1
        validator = create_validator(tmp_path, executor, gwp_processor)
        event = asyncio.Event()
        event.set()

        with pytest.raises(RuntimeError):
            execute(validator, job_id, stored_file(home, "test.xtf"), event)
        gwp_processor.run.assert_not_called()


class TestZipUpload:
    """Tests for transfer file selection in uploaded archives."""

    def test_transfer_file_with_catalogues(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test catalogues in an archive are passed with the transfer file."""
        validator = create_validator(tmp_path, executor, gwp_processor)
        upload = stored_zip(
            home, {"data.xtf": VALID_XTF, "catalogue.xml": "<CAT/>", "readme.txt": "info"}
        )

        execute(validator, job_id, upload)

        request = executor.validate.call_args.args[0]
        assert request.file_path == str(home / "data.xtf")
        assert request.log_file_path == str(home / "data_log.log")
        assert request.additional_catalogue_file_paths == (str(home / "catalogue.xml"),)
        transfer_file = gwp_processor.run.call_args.args[1]
        assert transfer_file.display_name == "data.xtf"

    def test_single_xml_is_transfer_file(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test a single XML file in an archive is the transfer file."""
        validator = create_validator(tmp_path, executor, gwp_processor)

        execute(validator, job_id, stored_zip(home, {"data.xml": VALID_XTF}))

        request = executor.validate.call_args.args[0]
        assert request.file_name == "data.xml"
        assert request.additional_catalogue_file_paths == ()

    @pytest.mark.parametrize(
        "entries",
        [
            {"a.xtf": VALID_XTF, "b.xtf": VALID_XTF},
            {"a.xtf": VALID_XTF, "b.itf": "SCNT"},
            {"a.xml": VALID_XTF, "b.xml": VALID_XTF},
        ],
    )
    def test_multiple_transfer_files(
        self, tmp_path, home, job_id, executor, gwp_processor, entries
    ):
        """Test archives with several transfer files are rejected."""
        validator = create_validator(tmp_path, executor, gwp_processor)

        kind = raised_kind(validator, job_id, stored_zip(home, entries))

        assert kind == JobErrorKind.MULTIPLE_TRANSFER_FILES

    def test_transfer_file_in_subfolder(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test a transfer file in an archive sub folder is validated in place."""
        validator = create_validator(tmp_path, executor, gwp_processor)

        execute(validator, job_id, stored_zip(home, {"data/a.xtf": VALID_XTF}))

        request = executor.validate.call_args.args[0]
        assert request.file_path == str(home / "data" / "a.xtf")
        assert request.xtf_log_file_path == str(home / "a_log.xtf")
        transfer_file = gwp_processor.run.call_args.args[1]
        assert transfer_file.file_path == str(home / "data" / "a.xtf")

    @pytest.mark.parametrize("entry", ["../other-job/secret.xtf", "/other-job/secret.xtf"])
    def test_entries_stay_in_job_directory(
        self, tmp_path, home, job_id, executor, gwp_processor, entry
    ):
        """Test archive entries cannot escape the job directory."""
        other_job = tmp_path / "other-job"
        other_job.mkdir()
        (other_job / "secret.xtf").write_text("<SECRET/>")
        validator = create_validator(tmp_path, executor, gwp_processor)

        execute(validator, job_id, stored_zip(home, {entry: VALID_XTF}))

        validated = executor.validate.call_args.args[0].file_path
        assert validated == str(home / "other-job" / "secret.xtf")
        assert home.resolve() in (home / "other-job" / "secret.xtf").resolve().parents
        assert (other_job / "secret.xtf").read_text() == "<SECRET/>"

    @pytest.mark.parametrize("entries", [{}, {"readme.txt": "info", "data.gpkg": "x"}])
    def test_no_transfer_file(self, tmp_path, home, job_id, executor, gwp_processor, entries):
        """Test archives without transfer file are rejected."""
        validator = create_validator(tmp_path, executor, gwp_processor)

        kind = raised_kind(validator, job_id, stored_zip(home, entries))

        assert kind == JobErrorKind.TRANSFER_FILE_NOT_FOUND


class TestGeoPackage:
    """Tests for GeoPackage uploads."""

    def test_reads_model_names(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test GeoPackage model names are passed to ili2gpkg."""
        gpkg = home / "data.gpkg"
        engine = create_engine(f"sqlite:///{gpkg}", poolclass=NullPool)
        with engine.begin() as conn:
            conn.execute(text('CREATE TABLE T_ILI2DB_MODEL ("modelName" TEXT)'))
            conn.execute(text("INSERT INTO T_ILI2DB_MODEL VALUES ('ModelA{ ModelB}')"))
            conn.execute(text("INSERT INTO T_ILI2DB_MODEL VALUES ('ModelC')"))
        engine.dispose()
        validator = create_validator(
            tmp_path, executor, gwp_processor, enable_gpkg_validation=True
        )

        execute(validator, job_id, NamedFile(file_path=str(gpkg)))

        request = executor.validate.call_args.args[0]
        assert request.is_geopackage
        assert request.gpkg_model_names == "ModelA;ModelB;ModelC"

    def test_unreadable_geopackage(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test unreadable GeoPackages are rejected."""
        validator = create_validator(
            tmp_path, executor, gwp_processor, enable_gpkg_validation=True
        )
        upload = stored_file(home, "data.gpkg", content="not a database " * 100)

        kind = raised_kind(validator, job_id, upload)

        assert kind == JobErrorKind.GEOPACKAGE

    def test_geopackage_without_models(self, tmp_path, home, job_id, executor, gwp_processor):
        """Test GeoPackages without models are rejected."""
        gpkg = home / "empty.gpkg"
        engine = create_engine(f"sqlite:///{gpkg}", poolclass=NullPool)
        with engine.begin() as conn:
            conn.execute(text('CREATE TABLE T_ILI2DB_MODEL ("modelName" TEXT)'))
        engine.dispose()
        validator = create_validator(
            tmp_path, executor, gwp_processor, enable_gpkg_validation=True
        )

        kind = raised_kind(validator, job_id, NamedFile(file_path=str(gpkg)))

        assert kind == JobErrorKind.GEOPACKAGE
