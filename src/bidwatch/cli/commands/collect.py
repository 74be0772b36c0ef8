"""
Collection commands: run a collection, inspect portals, fetch details
and download documents.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from bidwatch.cli.settings import get_config
from bidwatch.core.errors import BidWatchError
from bidwatch.core.logging import json_dumps

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="Collect notices from portals",
    no_args_is_help=True,
)

OUTCOME_STYLES = {
    "created": "green",
    "updated": "yellow",
    "unchanged": "dim",
    "failed": "red",
}


def _print_run_result(result: dict[str, Any], show_details: bool) -> None:
    status = "[green]OK[/green]" if result["success"] else "[red]FAILED[/red]"
    console.print(f"{status} {result['message']}")
    console.print()

    table = Table(title="Run Result", show_header=True, header_style="bold magenta")
    table.add_column("Created", justify="right", style="green")
    table.add_column("Updated", justify="right", style="yellow")
    table.add_column("Unchanged", justify="right")
    table.add_column("Failed", justify="right", style="red")
    table.add_row(
        str(result["created"]),
        str(result["updated"]),
        str(result["unchanged"]),
        str(result["failed"]),
    )
    console.print(table)

    if not show_details or not result["details"]:
        return

    details = Table(title="Notices", show_header=True, header_style="bold magenta")
    details.add_column("Notice", style="cyan")
    details.add_column("Outcome")
    details.add_column("Message", max_width=80)

    for item in result["details"]:
        style = OUTCOME_STYLES.get(item["outcome"], "")
        details.add_row(item["notice_number"], f"[{style}]{item['outcome']}[/{style}]", item["message"])

    console.print(details)


@app.command("run")
def run_collection(
    ctx: typer.Context,
    portal: str = typer.Option(
        "comprasnet",
        "--portal",
        "-p",
        help="Portal identifier",
    ),
    date_from: Optional[str] = typer.Option(
        None,
        "--from",
        help="First publication date (dd/mm/yyyy or yyyy-mm-dd)",
    ),
    date_to: Optional[str] = typer.Option(
        None,
        "--to",
        help="Last publication date (default: today)",
    ),
    days: int = typer.Option(
        7,
        "--days",
        "-d",
        help="Days before --to to include when --from is not given",
    ),
    modality: str = typer.Option("", "--modality", help="Modality filter"),
    situation: str = typer.Option("", "--situation", help="Situation filter"),
    organization: str = typer.Option("", "--organization", help="Organization filter"),
    notice_type: str = typer.Option("", "--type", help="Notice type filter"),
    details: bool = typer.Option(
        False,
        "--details",
        help="List the outcome of every notice",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the run result as JSON",
    ),
) -> None:
    """Run one collection and print its result.

    Examples:
        bidwatch collect run --portal comprasnet --from 01/03/2024 --to 15/03/2024
        bidwatch collect run --days 1 --json
    """
    from bidwatch.core.orchestrator.runner import collect_notices

    config = get_config(ctx)
    params = {
        "start": date_from,
        "end": date_to,
        "days": days,
        "modality": modality,
        "situation": situation,
        "organization": organization,
        "notice_type": notice_type,
    }

    if not as_json:
        console.print(f"[bold]Collecting notices from:[/bold] {portal}")

    result = asyncio.run(collect_notices(portal, params, config=config))

    if as_json:
        console.print_json(json_dumps(result))
    else:
        _print_run_result(result, show_details=details)

    if not result["success"]:
        raise typer.Exit(1)


@app.command("portals")
def list_portals(ctx: typer.Context) -> None:
    """List registered portals."""
    from bidwatch.core.config.loader import ConfigError, portal_overrides
    from bidwatch.core.portals.registry import PortalRegistry

    config = get_config(ctx)
    try:
        registry = PortalRegistry(portal_overrides(config))
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title="Portals", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("URL")
    table.add_column("Status", justify="center")

    for portal_id in registry.ids():
        portal = registry.config(portal_id)
        if not registry.is_implemented(portal_id):
            status = "[yellow]not implemented[/yellow]"
        elif not portal.enabled:
            status = "[red]disabled[/red]"
        else:
            status = "[green]OK[/green]"
        table.add_row(portal_id, portal.effective_display_name, portal.base_url, status)

    console.print(table)


@app.command("detail")
def show_detail(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Notice detail page URL"),
    portal: str = typer.Option("comprasnet", "--portal", "-p", help="Portal identifier"),
) -> None:
    """Fetch a notice detail page and print what was found."""
    from bidwatch.core.orchestrator.runner import CollectionService

    config = get_config(ctx)

    async def _fetch():
        async with CollectionService(config) as service:
            return await service.fetch_detail(portal, url)

    try:
        detail = asyncio.run(_fetch())
    except BidWatchError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if detail is None or (detail.is_empty and not detail.fields):
        err_console.print("[yellow]Nothing could be read from the detail page.[/yellow]")
        raise typer.Exit(1)

    table = Table(title="Notice Detail", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for label, value in detail.fields.items():
        table.add_row(label, value)
    console.print(table)

    if detail.estimated_value is not None:
        console.print(f"[bold]Estimated value:[/bold] R$ {detail.estimated_value:,.2f}")
    if detail.published_at is not None:
        console.print(f"[bold]Published:[/bold] {detail.published_at:%d/%m/%Y}")

    if detail.documents:
        console.print()
        console.print("[bold]Documents:[/bold]")
        for doc in detail.documents:
            console.print(f"  - {doc.name} [dim]{doc.url}[/dim]")


@app.command("documents")
def download_documents(
    ctx: typer.Context,
    notice_number: str = typer.Argument(..., help="Notice number"),
) -> None:
    """Download every document linked from a stored notice's detail page."""
    from bidwatch.core.orchestrator.runner import CollectionService

    config = get_config(ctx)

    async def _download():
        async with CollectionService(config) as service:
            return await service.download_documents(notice_number)

    try:
        summary = asyncio.run(_download())
    except BidWatchError as e:
        err_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if summary.total == 0:
        console.print("[dim]No documents found for this notice.[/dim]")
        return

    table = Table(title=f"Documents for {notice_number}", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Path / Error")

    for item in summary.items:
        status = "[green]OK[/green]" if item.ok else "[red]x[/red]"
        table.add_row(item.name, status, item.path if item.ok else item.message)

    console.print(table)
    console.print(f"{summary.succeeded} of {summary.total} downloaded, {summary.failed} failed")

    if summary.failed:
        raise typer.Exit(1)
