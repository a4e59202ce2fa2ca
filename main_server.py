"""Mini README: Entry point CLI for the FeeLedger API server.

Commands:
    * run - start the FastAPI application under uvicorn.
    * init-db - create any missing database tables and exit.

Settings come from ``FEELEDGER_*`` environment variables or ``.env``;
command-line options override the host and port.
"""

from __future__ import annotations

import typer
import uvicorn

from feeledger.configuration import get_settings
from feeledger.database import build_engine, init_database
from feeledger.database.connection import engine_label
from feeledger.logging_utils import configure_root_logger, level_for_environment

cli = typer.Typer(help="Launch and manage the FeeLedger bookkeeping API.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    configure_root_logger(level_for_environment(settings.environment))

    # Browsers cannot open the 0.0.0.0 / :: wildcard addresses directly.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        f"Starting FeeLedger on {effective_host}:{effective_port}.\n"
        f"API health check: http://{browser_host}:{effective_port}/health"
    )
    uvicorn.run(
        "feeledger.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not (production or settings.is_production),
    )


@cli.command("init-db")
def init_db() -> None:
    """Create every missing table in the configured database."""

    settings = get_settings()
    configure_root_logger(level_for_environment(settings.environment))
    url = settings.resolved_database_url
    engine = build_engine(url)
    try:
        init_database(engine)
    finally:
        engine.dispose()
    typer.echo(f"Database schema ready at {engine_label(url)}")


if __name__ == "__main__":
    cli()
