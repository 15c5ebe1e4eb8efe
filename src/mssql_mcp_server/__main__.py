"""Entry point for the SQL Server MCP Server."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from mssql_mcp_server.config import get_settings, set_env_file_path
from mssql_mcp_server.database.engine import create_engine, dispose_engine, test_connection
from mssql_mcp_server.logging_config import setup_logging
from mssql_mcp_server.server import mcp

# Import tools to register them with the server
from mssql_mcp_server.tools import procedure_tools, table_tools  # noqa: F401

app = typer.Typer(
    name="mssql-mcp-server",
    no_args_is_help=False,
)


def validate_env_file(ctx: typer.Context, value: str | None) -> str | None:
    """Check that an explicit --env-file points at an existing file.

    Args:
        ctx: Typer context, used to skip checks during shell completion.
        value: Path given on the command line, or None.

    Returns:
        Absolute path to the env file, or None if the option was not given.

    Raises:
        typer.BadParameter: If the path is missing or is not a regular file.
    """
    if ctx.resilient_parsing or value is None:
        return None

    env_path = Path(value)
    if not env_path.exists():
        raise typer.BadParameter(f"Environment file not found: {value}")
    if not env_path.is_file():
        raise typer.BadParameter(f"Path is not a file: {value}")
    return str(env_path.resolve())


def resolve_default_env_file(env_file: str | None) -> str | None:
    """Fall back to ./.env when no --env-file was given.

    Returns:
        env_file unchanged if set, else the absolute path of .env in the
        current directory if it is a file, else None.
    """
    if env_file is not None:
        return env_file

    default_env = Path.cwd() / ".env"
    return str(default_env.resolve()) if default_env.is_file() else None


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    env_file: Annotated[
        str | None,
        typer.Option(
            "--env-file",
            help="Path to .env file (default: .env in current directory)",
            callback=validate_env_file,
            metavar="PATH",
        ),
    ] = None,
) -> None:
    """SQL Server MCP Server for catalog introspection via Model Context Protocol."""
    set_env_file_path(resolve_default_env_file(env_file))

    # Subcommands read settings themselves
    if ctx.invoked_subcommand is not None:
        return

    settings = get_settings()

    setup_logging(settings.server.log_level, settings.server.log_format)

    logger = logging.getLogger(__name__)
    logger.info("Starting SQL Server MCP Server with %s transport", settings.server.transport)

    if settings.server.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.settings.host = settings.server.host
        mcp.settings.port = settings.server.port
        mcp.run(transport="streamable-http")


@app.command()
def test() -> None:
    """Test database connection and exit."""
    # env_file is set by the callback
    settings = get_settings()

    async def run_test() -> str | None:
        engine = await create_engine(settings.database)
        try:
            return await test_connection(engine)
        finally:
            await dispose_engine(engine)

    try:
        version = asyncio.run(run_test())
    except Exception as e:
        typer.echo(f"Connection failed: {e}", err=True)
        raise typer.Exit(1) from e

    typer.echo("Connection successful")
    if version:
        typer.echo(f"SQL Server version: {version}")
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
