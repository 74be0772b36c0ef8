"""
Schedule commands.
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from bidwatch.cli.settings import get_config

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Run and inspect scheduled collections",
    no_args_is_help=True,
)


@app.command("list")
def list_schedules(ctx: typer.Context) -> None:
    """List all configured schedules."""
    from bidwatch.core.scheduler.service import describe_schedule

    config = get_config(ctx)
    schedules = config.scheduler.schedules

    if not schedules:
        console.print("[dim]No schedules configured.[/dim]")
        return

    table = Table(title="Schedules", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Portal")
    table.add_column("Schedule")
    table.add_column("Look-back", justify="right")
    table.add_column("Timezone")

    for schedule in schedules:
        status = "[green]OK Enabled[/green]" if schedule.enabled else "[red]x Disabled[/red]"
        table.add_row(
            schedule.name,
            status,
            schedule.portal,
            describe_schedule(schedule),
            f"{schedule.lookback_days} d",
            schedule.timezone,
        )

    console.print(table)

    if not config.scheduler.enabled:
        console.print("[yellow]The scheduler is disabled in app.yaml.[/yellow]")


@app.command("start")
def start_scheduler(ctx: typer.Context) -> None:
    """Start the scheduler in the foreground (Ctrl+C to stop)."""
    from bidwatch.core.scheduler.service import SchedulerService

    config = get_config(ctx)
    if not config.scheduler.enabled:
        err_console.print("[red]The scheduler is disabled in app.yaml[/red]")
        raise typer.Exit(1)

    console.print("[bold]Starting scheduler...[/bold] [dim](Ctrl+C to stop)[/dim]")
    try:
        asyncio.run(SchedulerService(config).start())
    except KeyboardInterrupt:
        console.print("[yellow]Scheduler stopped[/yellow]")


@app.command("run-now")
def run_now(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Schedule name"),
) -> None:
    """Run a schedule immediately, honoring its lock."""
    from bidwatch.core.scheduler.service import SchedulerService, find_schedule

    config = get_config(ctx)
    if find_schedule(config, name) is None:
        err_console.print(f"[red]Schedule not found:[/red] {name}")
        raise typer.Exit(1)

    result = asyncio.run(SchedulerService(config).trigger_now(name))

    if result is None:
        console.print(f"[yellow]Skipped:[/yellow] {name} is disabled or already running")
        return

    style = "green" if result["success"] else "red"
    console.print(f"[{style}]{result['message']}[/{style}]")
    if not result["success"]:
        raise typer.Exit(1)
