"""Configuration management using pydantic-settings."""

from typing import Any

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

# Module-level state for env file path
_env_file_path: str | None = None


def set_env_file_path(path: str | None) -> None:
    """Set the env file path for settings to use.

    Args:
        path: Path to .env file, or None to use default (.env in current directory).
    """
    global _env_file_path
    _env_file_path = path


def get_env_file_path() -> str | None:
    """Get the currently configured env file path.

    Returns:
        The configured env file path, or None if using default.
    """
    return _env_file_path


class DatabaseSettings(BaseSettings):
    """SQL Server connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MSSQL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=1433, ge=1, le=65535, description="Database port")
    database: str = Field(..., description="Database name")
    user: str = Field(..., description="Database user")
    password: SecretStr = Field(..., description="Database password")
    driver: str = Field(
        default="ODBC Driver 18 for SQL Server", description="ODBC driver name"
    )
    trust_server_certificate: bool = Field(
        default=False, description="Skip TLS certificate validation"
    )

    # Connection pool settings
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")
    pool_timeout: float = Field(
        default=30.0, gt=0, description="Pool connection timeout in seconds"
    )

    @property
    def async_url(self) -> URL:
        """Build async connection URL for aioodbc."""
        query = {"driver": self.driver}
        if self.trust_server_certificate:
            query["TrustServerCertificate"] = "yes"
        return URL.create(
            "mssql+aioodbc",
            username=self.user,
            password=self.password.get_secret_value(),
            host=self.host,
            port=self.port,
            database=self.database,
            query=query,
        )


class ServerSettings(BaseSettings):
    """MCP server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    transport: str = Field(default="stdio", pattern="^(stdio|http)$", description="Transport type")
    host: str = Field(default="0.0.0.0", description="HTTP server host")
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP server port")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="json", pattern="^(json|text)$", description="Log output format"
    )


class Settings(BaseSettings):
    """Root settings combining all configuration."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
    )

    database: DatabaseSettings = Field(default=None)  # type: ignore[assignment]
    server: ServerSettings = Field(default=None)  # type: ignore[assignment]

    @model_validator(mode="before")
    @classmethod
    def load_nested_settings(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Load nested settings with the configured env file path."""
        env_file = _env_file_path
        if "database" not in data or data["database"] is None:
            # _env_file is a valid pydantic-settings init parameter
            data["database"] = DatabaseSettings(_env_file=env_file)  # type: ignore[call-arg]
        if "server" not in data or data["server"] is None:
            data["server"] = ServerSettings(_env_file=env_file)  # type: ignore[call-arg]
        return data


def get_settings() -> Settings:
    """Factory function to create settings instance."""
    return Settings()
