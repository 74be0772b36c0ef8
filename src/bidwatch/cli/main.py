"""
BidWatch command line.

    bidwatch init                      create directories, app.yaml and the schema
    bidwatch collect run --days 7      collect a week of Comprasnet notices
    bidwatch schedule start            run the scheduled collections
"""

from __future__ import annotations

from typing import Optional

import typer
import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.traceback import install as install_rich_traceback

from bidwatch import __app_name__, __version__
from bidwatch.core.config.models import AppConfig

from .settings import configure_logging, load_config_or_exit

load_dotenv()
install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Collect and track public procurement notices",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"{__app_name__} [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None, "--version", "-v", callback=_show_version, is_eager=True, help="Print the version"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log at DEBUG level"),
) -> None:
    """BidWatch: procurement notice collector."""
    config = load_config_or_exit()
    configure_logging(config, verbose=verbose)
    ctx.obj = config


from .commands import collect, db, notices, schedule  # noqa: E402

app.add_typer(collect.app, name="collect", help="Collect notices from portals")
app.add_typer(notices.app, name="notices", help="Browse collected notices")
app.add_typer(schedule.app, name="schedule", help="Scheduled collections")
app.add_typer(db.app, name="db", help="Schema and migrations")


def default_app_yaml() -> str:
    """app.yaml holding every default, with the database URL overridable from the environment."""
    data = AppConfig().model_dump(mode="json", exclude={"portals"})
    data["database"]["url"] = "${BIDWATCH_DATABASE_URL:-%s}" % data["database"]["url"]
    return "# BidWatch configuration\n\n" + yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


@app.command()
def init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Rewrite an existing app.yaml"),
) -> None:
    """Create the working directories, a default app.yaml and the database schema."""
    from bidwatch.persistence.db import init_db

    config: AppConfig = ctx.obj or load_config_or_exit()

    config.ensure_directories()
    config.portals_dir.mkdir(parents=True, exist_ok=True)

    app_yaml = config.config_dir / "app.yaml"
    written = force or not app_yaml.exists()
    if written:
        app_yaml.write_text(default_app_yaml(), encoding="utf-8")

    with console.status("Creating database schema..."):
        init_db(config.database.url)

    lines = [
        f"{'Wrote' if written else 'Kept'} [cyan]{app_yaml}[/cyan]",
        f"Portal overrides go in [cyan]{config.portals_dir}/[/cyan]",
        f"Database at [cyan]{config.database.url}[/cyan]",
        "",
        "Try [yellow]bidwatch collect run --portal comprasnet --days 7[/yellow]",
    ]
    console.print(Panel.fit("\n".join(lines), title="BidWatch initialized", border_style="green"))


@app.command()
def status(ctx: typer.Context) -> None:
    """Count stored notices per category."""
    from rich.table import Table
    from sqlalchemy.exc import SQLAlchemyError

    from bidwatch.persistence.db import get_engine, get_session
    from bidwatch.persistence.repo import NoticeRepository

    config: AppConfig = ctx.obj or load_config_or_exit()
    get_engine(config.database.url)

    try:
        with get_session() as session:
            counts = NoticeRepository(session).count_by_category()
    except SQLAlchemyError as e:
        err_console.print(f"[red]Database not ready:[/red] {e}")
        err_console.print("Run [yellow]bidwatch init[/yellow] first")
        raise typer.Exit(1)

    if not counts:
        console.print("[dim]No notices yet.[/dim]")
        return

    table = Table(title="Notices per category", header_style="bold magenta")
    table.add_column("Category", style="cyan")
    table.add_column("Notices", justify="right")
    for name, count in sorted(counts.items()):
        table.add_row(name, str(count))
    table.add_row("[bold]Total[/bold]", f"[bold]{sum(counts.values())}[/bold]")
    console.print(table)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
