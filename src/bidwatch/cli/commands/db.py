"""
Database management commands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from bidwatch.cli.settings import get_config
from bidwatch.core.config.models import AppConfig

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(help="Database operations", no_args_is_help=True)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "persistence" / "migrations"


def _alembic_config(config: AppConfig):
    """Alembic config pointing at the packaged migrations and the configured database."""
    from alembic.config import Config

    ini = Path("alembic.ini")
    alembic_cfg = Config(str(ini)) if ini.exists() else Config()
    alembic_cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", config.database.url)
    alembic_cfg.attributes["db_url"] = config.database.url
    # Keep the CLI's own log handlers in place
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


@app.command("init")
def init_database(
    ctx: typer.Context,
    drop_existing: bool = typer.Option(False, "--drop", help="Drop every table first"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask before dropping"),
) -> None:
    """Create the schema and mark it as migrated to the latest revision."""
    from alembic import command

    from bidwatch.persistence.db import drop_db, init_db

    config = get_config(ctx)

    if drop_existing:
        if not yes and not typer.confirm("Drop all tables and their data?", default=False):
            raise typer.Abort()
        console.print("[yellow]Dropping tables...[/yellow]")
        drop_db(config.database.url)

    init_db(config.database.url)
    command.stamp(_alembic_config(config), "head")
    console.print(f"[green]OK[/green] Schema ready at {config.database.url}")


@app.command("migrate")
def run_migrations(
    ctx: typer.Context,
    revision: str = typer.Option("head", "--revision", "-r", help="Target revision"),
) -> None:
    """Upgrade the database to a revision."""
    from alembic import command
    from alembic.util import CommandError

    config = get_config(ctx)
    console.print(f"Upgrading to [cyan]{revision}[/cyan]")

    try:
        command.upgrade(_alembic_config(config), revision)
    except CommandError as e:
        err_console.print(f"[red]Migration failed:[/red] {e}")
        raise typer.Exit(1)

    console.print("[green]OK[/green] Up to date")


@app.command("current")
def show_revision(ctx: typer.Context) -> None:
    """Print the revision the database is at."""
    from alembic.migration import MigrationContext

    from bidwatch.persistence.db import get_engine

    config = get_config(ctx)
    with get_engine(config.database.url).connect() as connection:
        revision = MigrationContext.configure(connection).get_current_revision()

    console.print(revision or "[dim](not stamped)[/dim]")
