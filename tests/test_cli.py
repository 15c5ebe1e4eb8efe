"""Tests for CLI argument parsing and env file handling."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import typer
from typer.testing import CliRunner

from mssql_mcp_server.__main__ import app, resolve_default_env_file, validate_env_file
from mssql_mcp_server.config import get_env_file_path, get_settings, set_env_file_path

runner = CliRunner()

ENV_TEMPLATE = (
    "MSSQL_HOST={host}\n"
    "MSSQL_DATABASE=testdb\n"
    "MSSQL_USER=testuser\n"
    "MSSQL_PASSWORD=testpass\n"
)


def write_env(path: Path, host: str = "localhost", extra: str = "") -> Path:
    """Write a minimal env file for the CLI to load."""
    path.write_text(ENV_TEMPLATE.format(host=host) + extra)
    return path


@pytest.fixture
def patched_engine():
    """Patch engine creation, connection test and disposal in the CLI module."""
    with patch("mssql_mcp_server.__main__.create_engine") as mock_create, patch(
        "mssql_mcp_server.__main__.test_connection"
    ) as mock_test, patch("mssql_mcp_server.__main__.dispose_engine") as mock_dispose:
        mock_create.return_value = AsyncMock()
        mock_test.return_value = "16.0.1000.6"
        yield mock_create, mock_test, mock_dispose


@pytest.fixture(autouse=True)
def reset_env_file_path():
    """Keep the module-level env file path from leaking between tests."""
    yield
    set_env_file_path(None)


class TestCLI:
    """Tests for CLI using typer's CliRunner."""

    def test_cli_help(self) -> None:
        """Test that --help shows the server name and the --env-file option."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "--env-file" in result.output
        assert "PATH" in result.output
        assert "SQL Server MCP Server" in result.output

    @pytest.mark.parametrize(
        ("make_path", "message"),
        [
            (lambda tmp: tmp / "missing.env", "Environment file not found"),
            (lambda tmp: tmp, "Path is not a file"),
        ],
    )
    def test_cli_rejects_bad_env_file(self, tmp_path: Path, make_path, message: str) -> None:
        """Test an unusable --env-file aborts with a clear error."""
        result = runner.invoke(app, ["--env-file", str(make_path(tmp_path))])
        assert result.exit_code != 0
        assert message in result.output

    def test_cli_auto_loads_env_from_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, patched_engine
    ) -> None:
        """Test ./.env is used when --env-file is not given."""
        write_env(tmp_path / ".env", host="auto-loaded-host")
        monkeypatch.chdir(tmp_path)
        mock_create, _, _ = patched_engine

        result = runner.invoke(app, ["test"])

        assert result.exit_code == 0
        assert mock_create.call_args[0][0].host == "auto-loaded-host"

    def test_cli_works_from_environment_only(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, patched_engine
    ) -> None:
        """Test settings come from MSSQL_ variables when no .env exists."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MSSQL_HOST", "env-var-host")
        monkeypatch.setenv("MSSQL_DATABASE", "testdb")
        monkeypatch.setenv("MSSQL_USER", "testuser")
        monkeypatch.setenv("MSSQL_PASSWORD", "testpass")
        mock_create, _, _ = patched_engine

        result = runner.invoke(app, ["test"])

        assert result.exit_code == 0
        assert mock_create.call_args[0][0].host == "env-var-host"


class TestValidateEnvFile:
    """Tests for env file validation callback."""

    def _make_context(self, resilient_parsing: bool = False) -> typer.Context:
        ctx = MagicMock(spec=typer.Context)
        ctx.resilient_parsing = resilient_parsing
        return ctx

    def test_validate_env_file_none(self) -> None:
        """Test validation with None returns None."""
        assert validate_env_file(self._make_context(), None) is None

    def test_validate_env_file_valid_file(self, tmp_path: Path) -> None:
        """Test validation with valid file returns resolved path."""
        env_file = write_env(tmp_path / "test.env")

        result = validate_env_file(self._make_context(), str(env_file))

        assert result == str(env_file.resolve())

    def test_validate_env_file_missing_file(self, tmp_path: Path) -> None:
        """Test validation with missing file raises BadParameter."""
        with pytest.raises(typer.BadParameter) as exc_info:
            validate_env_file(self._make_context(), str(tmp_path / "missing.env"))

        assert "Environment file not found" in str(exc_info.value)

    def test_validate_env_file_skipped_during_completion(self, tmp_path: Path) -> None:
        """Test shell completion never validates paths."""
        env_file = write_env(tmp_path / "test.env")

        assert validate_env_file(self._make_context(resilient_parsing=True), str(env_file)) is None


class TestResolveDefaultEnvFile:
    """Tests for auto-detection of .env file in current working directory."""

    def test_returns_explicit_path_unchanged(self, tmp_path: Path) -> None:
        """Test that an explicit path wins over ./.env."""
        env_file = write_env(tmp_path / "custom.env")
        assert resolve_default_env_file(str(env_file)) == str(env_file)

    def test_detects_env_file_in_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that ./.env is detected when no explicit path is given."""
        env_file = write_env(tmp_path / ".env")
        monkeypatch.chdir(tmp_path)

        assert resolve_default_env_file(None) == str(env_file.resolve())

    def test_ignores_missing_or_directory_env(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test None is returned when ./.env is absent or not a file."""
        monkeypatch.chdir(tmp_path)
        assert resolve_default_env_file(None) is None

        (tmp_path / ".env").mkdir()
        assert resolve_default_env_file(None) is None


class TestSettingsWithEnvFile:
    """Integration tests for settings loading with custom env file."""

    def test_settings_loads_from_custom_env_file(self, tmp_path: Path) -> None:
        """Test that both settings groups read the chosen env file."""
        env_file = write_env(
            tmp_path / "custom.env",
            host="sql01.internal",
            extra=(
                "MSSQL_PORT=1434\n"
                "MSSQL_DRIVER=ODBC Driver 17 for SQL Server\n"
                "MSSQL_TRUST_SERVER_CERTIFICATE=true\n"
                "MCP_LOG_LEVEL=DEBUG\n"
            ),
        )
        set_env_file_path(str(env_file))

        assert get_env_file_path() == str(env_file)
        settings = get_settings()

        assert settings.database.host == "sql01.internal"
        assert settings.database.port == 1434
        assert settings.database.driver == "ODBC Driver 17 for SQL Server"
        assert settings.database.trust_server_certificate is True
        assert settings.database.password.get_secret_value() == "testpass"
        assert settings.server.log_level == "DEBUG"


class TestTestCommand:
    """Tests for the 'test' CLI command."""

    def test_test_command_success(self, tmp_path: Path, patched_engine) -> None:
        """Test a reachable server reports success and its version."""
        env_file = write_env(tmp_path / "test.env")
        mock_create, mock_test, mock_dispose = patched_engine

        result = runner.invoke(app, ["--env-file", str(env_file), "test"])

        assert result.exit_code == 0
        assert "Connection successful" in result.output
        assert "SQL Server version: 16.0.1000.6" in result.output
        mock_test.assert_called_once_with(mock_create.return_value)
        mock_dispose.assert_called_once_with(mock_create.return_value)

    def test_test_command_failure(self, tmp_path: Path, patched_engine) -> None:
        """Test a failed connection exits 1 and still disposes the engine."""
        env_file = write_env(tmp_path / "test.env")
        mock_create, mock_test, mock_dispose = patched_engine
        mock_test.side_effect = Exception("Login failed for user 'testuser'")

        result = runner.invoke(app, ["--env-file", str(env_file), "test"])

        assert result.exit_code == 1
        assert "Connection failed" in result.output
        assert "Login failed for user 'testuser'" in result.output
        mock_dispose.assert_called_once_with(mock_create.return_value)

    def test_test_command_help(self) -> None:
        """Test that test command help is displayed."""
        result = runner.invoke(app, ["test", "--help"])
        assert result.exit_code == 0
        assert "Test database connection" in result.output
