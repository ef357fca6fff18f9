"""Main CLI entry point for Studioflow.

This module provides the Typer application: the API server, schema
creation, and read-only views of stages for operators.

Usage:
    studioflow serve --port 8000
    studioflow init-db
    studioflow stage show <stage-id>
    studioflow stage timeline <stage-id>
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from studioflow.cli import stage as stage_cli
from studioflow.config import StudioflowConfig, load_config
from studioflow.database.connection import get_engine
from studioflow.database.models import Base
from studioflow.logging import get_logger, setup_logging

app = typer.Typer(
    name="studioflow",
    help="Studioflow: interior design studio workflow backend",
    no_args_is_help=True,
)

app.add_typer(stage_cli.app, name="stage", help="Inspect stages")

console = Console()
logger = get_logger(__name__)


class AppContext:
    """Application context shared across CLI commands.

    Attributes:
        config: Loaded Studioflow configuration
    """

    def __init__(self, config: StudioflowConfig):
        self.config = config


_app_context: AppContext | None = None


def get_app_context() -> AppContext:
    """Get the shared application context.

    Raises:
        RuntimeError: If context has not been initialized
    """
    if _app_context is None:
        raise RuntimeError("Application context not initialized. Call initialize_context first.")
    return _app_context


def initialize_context(config: StudioflowConfig) -> AppContext:
    """Initialize the global application context."""
    global _app_context
    _app_context = AppContext(config)
    return _app_context


@app.command()
def serve(
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Host to bind to (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Port to bind to (default from config)"),
    ] = None,
) -> None:
    """Start the Studioflow API server."""
    import uvicorn

    from studioflow.web.app import create_app

    config = get_app_context().config
    bind_host = host or config.web.host
    bind_port = port or config.web.port

    console.print("[bold cyan]Starting Studioflow API[/bold cyan]")
    console.print(f"[dim]Host:[/dim] {bind_host}")
    console.print(f"[dim]Port:[/dim] {bind_port}")
    console.print()

    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level=config.logging.level.lower(),
    )


@app.command("init-db")
def init_db() -> None:
    """Create all tables in the configured database.

    Intended for local SQLite databases and first-time setup; production
    schemas are managed with alembic.
    """
    config = get_app_context().config

    async def _create_tables() -> None:
        engine = get_engine(config.database)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()

    try:
        asyncio.run(_create_tables())
    except Exception as e:
        logger.error("init_db_failed", error=str(e))
        console.print(f"[red]Error creating tables:[/red] {e}")
        raise typer.Exit(code=1) from e

    console.print(f"[green]Created {len(Base.metadata.tables)} tables[/green]")


@app.callback()
def main_callback(
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file (TOML format)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Load configuration, set up logging and initialize the context."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        config.logging = config.logging.model_copy(update={"level": "DEBUG"})
    setup_logging(config.logging)
    initialize_context(config)

    if verbose:
        console.print("[dim]Debug logging enabled[/dim]")


if __name__ == "__main__":
    app()
