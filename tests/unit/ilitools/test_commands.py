"""Unit tests for ilitools command construction."""

import shlex

import pytest

from interlis_worker.errors import UnsupportedRequestError
from interlis_worker.ilitools import commands
from interlis_worker.ilitools.environment import IlitoolsEnvironment
from interlis_worker.models.domain import ExportRequest, ImportRequest, Profile, ValidationRequest


@pytest.fixture
def environment(tmp_path):
    """Environment without plugins, proxy or trace."""
    return IlitoolsEnvironment(
        model_repository_dir=str(tmp_path / "OLYMPIAVIEW"),
        ilivalidator_path="/path/to/ilivalidator.jar",
        ili2gpkg_path="/path/to/ili2gpkg.jar",
        plugins_dir=str(tmp_path / "plugins"),
        enable_gpkg_validation=True,
    )


def create_validation_request(
    home_directory,
    transfer_file,
    profile_id="DEFAULT",
    log=True,
    xtf_log=True,
    verbose=True,
    gpkg_model_names=None,
    additional_catalogue_file_paths=(),
):
    stem = transfer_file.rsplit(".", 1)[0]
    return ValidationRequest(
        file_name=transfer_file,
        file_path=f"{home_directory}/{transfer_file}",
        profile=Profile(id=profile_id) if profile_id else None,
        log_file_path=f"{home_directory}/{stem}_log.log" if log else None,
        xtf_log_file_path=f"{home_directory}/{stem}_log.xtf" if xtf_log else None,
        csv_log_file_path=f"{home_directory}/{stem}_log.csv",
        verbose_logging=verbose,
        gpkg_model_names=gpkg_model_names,
        additional_catalogue_file_paths=tuple(additional_catalogue_file_paths),
    )


class TestCommonArguments:
    """Tests for arguments shared by all invocations."""

    def test_full_argument_order(self, environment):
        """Test the common arguments keep their fixed order."""
        request = create_validation_request("/test/path", "test.xtf")

        args = commands.join_non_empty(commands.common_arguments(request, environment))

        assert args == (
            f'--log "{request.log_file_path}" --xtflog "{request.xtf_log_file_path}" --verbose '
            f'--modeldir "{environment.model_repository_dir}" --metaConfig "ilidata:DEFAULT"'
        )

    def test_without_profile_omits_meta_config(self, environment):
        """Test --metaConfig is omitted without a profile."""
        request = create_validation_request("/test/path", "test.xtf", profile_id=None)

        args = commands.join_non_empty(commands.common_arguments(request, environment))

        assert "--metaConfig" not in args

    def test_without_verbose(self, environment):
        """Test --verbose is omitted when verbose logging is off."""
        request = create_validation_request("/test/path", "test.xtf", verbose=False)

        args = commands.join_non_empty(commands.common_arguments(request, environment))

        assert "--verbose" not in args
        assert "--log" in args
        assert "--xtflog" in args

    def test_without_log_files(self, environment):
        """Test log arguments are omitted when no log paths are set."""
        no_log = create_validation_request("/test/path", "test.xtf", log=False)
        no_xtf_log = create_validation_request("/test/path", "test.xtf", xtf_log=False)

        no_log_args = commands.join_non_empty(commands.common_arguments(no_log, environment))
        no_xtf_log_args = commands.join_non_empty(
            commands.common_arguments(no_xtf_log, environment)
        )

        assert "--log " not in no_log_args
        assert "--xtflog" in no_log_args
        assert "--xtflog" not in no_xtf_log_args

    def test_proxy_and_trace(self, environment):
        """Test proxy host, port and trace flags are emitted."""
        env = IlitoolsEnvironment(
            model_repository_dir="/models",
            proxy="http://proxy.example.com:8080",
            trace_enabled=True,
        )
        request = create_validation_request("/test/path", "test.xtf", profile_id=None)

        args = commands.join_non_empty(commands.common_arguments(request, env))

        assert args.endswith(
            '--verbose --proxy proxy.example.com --proxyPort 8080 --trace --modeldir "/models"'
        )

    def test_proxy_without_port_emits_host_only(self):
        """Test a proxy URL without port emits only --proxy."""
        env = IlitoolsEnvironment(model_repository_dir="/models", proxy="http://proxy.example.com")
        request = create_validation_request("/test/path", "test.xtf", profile_id=None)

        args = commands.join_non_empty(commands.common_arguments(request, env))

        assert "--proxy proxy.example.com" in args
        assert "--proxyPort" not in args


class TestIlivalidatorCommand:
    """Tests for create_ilivalidator_command."""

    def test_command(self, environment):
        """Test the full ilivalidator command."""
        request = create_validation_request("/test/path", "test.xtf")

        command = commands.create_ilivalidator_command(request, environment)

        assert command == (
            f'-jar "/path/to/ilivalidator.jar" --csvlog "{request.csv_log_file_path}" '
            f'--log "{request.log_file_path}" --xtflog "{request.xtf_log_file_path}" --verbose '
            f'--modeldir "{environment.model_repository_dir}" --metaConfig "ilidata:DEFAULT" '
            f'"{request.file_path}"'
        )

    def test_command_with_catalogue_files(self, environment):
        """Test catalogue files follow the transfer file."""
        request = create_validation_request(
            "/test/path", "test.xtf", additional_catalogue_file_paths=["additionalTestFile.xml"]
        )

        command = commands.create_ilivalidator_command(request, environment)

        assert command.endswith(f'"{request.file_path}" "additionalTestFile.xml"')

    def test_plugins_only_when_jars_present(self, environment, tmp_path):
        """Test --plugins is only added when the directory holds jars."""
        request = create_validation_request("/test/path", "test.xtf")
        plugins_dir = tmp_path / "plugins"
        plugins_dir.mkdir()
        (plugins_dir / "readme.txt").write_text("not a plugin")

        assert "--plugins" not in commands.create_ilivalidator_command(request, environment)

        (plugins_dir / "check.jar").write_bytes(b"")
        command = commands.create_ilivalidator_command(request, environment)

        assert command.startswith(
            f'-jar "/path/to/ilivalidator.jar" --plugins "{plugins_dir}" --csvlog'
        )


class TestIli2gpkgCommands:
    """Tests for the ili2gpkg command builders."""

    def test_validation_with_model_names(self, environment):
        """Test ili2gpkg validation passes the model names."""
        request = create_validation_request(
            "/test/path", "test.gpkg", gpkg_model_names="Model1;Model2"
        )

        command = commands.create_ili2gpkg_validation_command(request, environment)

        assert command == (
            '-jar "/path/to/ili2gpkg.jar" --validate --models "Model1;Model2" '
            f'--log "{request.log_file_path}" --xtflog "{request.xtf_log_file_path}" --verbose '
            f'--modeldir "{environment.model_repository_dir}" --metaConfig "ilidata:DEFAULT" '
            f'--dbfile "{request.file_path}"'
        )

    @pytest.mark.parametrize("model_names", [None, ""])
    def test_validation_without_model_names(self, environment, model_names):
        """Test ili2gpkg validation without model names omits --models."""
        request = create_validation_request(
            "/test/path", "test.gpkg", gpkg_model_names=model_names
        )

        command = commands.create_ili2gpkg_validation_command(request, environment)

        assert command.startswith('-jar "/path/to/ili2gpkg.jar" --validate --log')
        assert "--models" not in command

    @pytest.mark.parametrize(
        "home_directory,transfer_file",
        [("/PEEVEDBAGEL", "ANT.XTF"), ("foo/bar", "SETNET.GPKG"), ("$SEA/RED", "WATCH.GPKG")],
    )
    def test_special_paths_are_quoted(self, environment, home_directory, transfer_file):
        """Test paths with special characters are quoted."""
        request = create_validation_request(home_directory, transfer_file)

        command = commands.create_ili2gpkg_validation_command(request, environment)

        assert f'--log "{request.log_file_path}"' in command
        assert f'--xtflog "{request.xtf_log_file_path}"' in command
        assert f'"{request.file_path}"' in command

    @pytest.mark.parametrize("file_name", ['say "hi".xtf', "back\\slash.xtf", "it's.xtf"])
    def test_embedded_quotes_survive_splitting(self, environment, file_name):
        """Test quoted values split back into the original file path."""
        request = create_validation_request("/uploads/job", file_name)

        command = commands.create_ilivalidator_command(request, environment)

        assert shlex.split(command)[-1] == f"/uploads/job/{file_name}"

    def test_validation_rejects_catalogue_files(self, environment):
        """Test ili2gpkg validation rejects catalogue files."""
        request = create_validation_request(
            "/test/path", "test.gpkg", additional_catalogue_file_paths=["catalogue.xml"]
        )

        with pytest.raises(UnsupportedRequestError):
            commands.create_ili2gpkg_validation_command(request, environment)

    def test_import(self, environment):
        """Test the ili2gpkg import command."""
        request = ImportRequest(
            file_name="import.gpkg",
            file_path="/import/path/import.gpkg",
            db_file_path="/import/path/import.gpkg",
            dataset="Data",
            profile=Profile(id="TEST_PROFILE"),
        )

        command = commands.create_ili2gpkg_import_command(request, environment)

        assert command == (
            '-jar "/path/to/ili2gpkg.jar" --import --disableValidation --skipReferenceErrors '
            '--skipGeometryErrors --importTid --importBid --dataset "Data" '
            '--dbfile "/import/path/import.gpkg" '
            f'--modeldir "{environment.model_repository_dir}" '
            '--metaConfig "ilidata:TEST_PROFILE" "/import/path/import.gpkg"'
        )

    def test_export(self, environment):
        """Test the ili2gpkg export command."""
        request = ExportRequest(
            file_name="export.gpkg",
            file_path="/export/path/export.gpkg",
            db_file_path="/export/path/export.gpkg",
            dataset="Data",
            profile=Profile(id="TEST_PROFILE"),
        )

        command = commands.create_ili2gpkg_export_command(request, environment)

        assert command == (
            '-jar "/path/to/ili2gpkg.jar" --export --disableValidation --skipReferenceErrors '
            '--skipGeometryErrors --dataset "Data" --dbfile "/export/path/export.gpkg" '
            f'--modeldir "{environment.model_repository_dir}" '
            '--metaConfig "ilidata:TEST_PROFILE" "/export/path/export.gpkg"'
        )

    def test_commands_are_deterministic(self, environment):
        """Test builders return the same command for the same input."""
        request = create_validation_request("/test/path", "test.xtf")

        first = commands.create_ilivalidator_command(request, environment)
        second = commands.create_ilivalidator_command(request, environment)

        assert first == second
