"""Mini README: Entry point CLI for the Fundtracker web service.

This script exposes a Typer CLI that starts the FastAPI application with
configurable host, port, and production flags, prepares the database schema,
and creates user accounts from the terminal. Settings are drawn from
``FUNDTRACKER_*`` environment variables when available.
"""

from __future__ import annotations

import typer
import uvicorn

from fundtracker.configuration import get_settings
from fundtracker.interface.auth import hash_password
from fundtracker.logging_utils import configure_root_logger
from fundtracker.storage import UserRepository, build_engine, build_session_factory, init_db, session_scope

cli = typer.Typer(help="Run and administer the Fundtracker finance dashboard.")


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
    configure_root_logger(settings.log_level)

    # Browsers cannot open 0.0.0.0 directly, so point operators at localhost.
    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        "Starting Fundtracker on "
        f"{effective_host}:{effective_port}.\n"
        "Open your browser at "
        f"http://{browser_host}:{effective_port}"
    )
    uvicorn.run(
        "fundtracker.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production,
    )


@cli.command("init-db")
def init_database() -> None:
    """Create any missing tables in the configured database."""

    settings = get_settings()
    configure_root_logger(settings.log_level)
    init_db(build_engine(settings.database_url))
    typer.echo(f"Database ready at {settings.database_url}")


@cli.command("create-user")
def create_user(
    username: str = typer.Argument(..., help="Login name (at least 3 characters)."),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, help="Password (at least 6 characters)."
    ),
    first_name: str = typer.Option(None, help="Optional first name."),
    last_name: str = typer.Option(None, help="Optional last name."),
) -> None:
    """Create a login without going through the web registration form."""

    if len(username) < 3 or len(password) < 6:
        typer.echo("Username needs 3+ characters and password 6+ characters.", err=True)
        raise typer.Exit(code=1)
    settings = get_settings()
    configure_root_logger(settings.log_level)
    engine = build_engine(settings.database_url)
    init_db(engine)
    try:
        with session_scope(build_session_factory(engine)) as session:
            user = UserRepository(session).create(
                username, hash_password(password), first_name=first_name, last_name=last_name
            )
    except ValueError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error
    typer.echo(f"Created user {user.username} ({user.id})")


if __name__ == "__main__":
    cli()
