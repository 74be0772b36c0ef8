"""
Read-only views of collected notices.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bidwatch.cli.settings import get_config

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    help="View collected notices",
    no_args_is_help=True,
)


def _fmt_datetime(value, fmt: str = "%d/%m/%Y %H:%M") -> str:
    return value.strftime(fmt) if value else "[dim]-[/dim]"


@app.command("list")
def list_notices(
    ctx: typer.Context,
    category: Optional[str] = typer.Option(
        None,
        "--category",
        "-c",
        help="Only notices in this category",
    ),
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Only notices from this source (e.g. ComprasNet)",
    ),
    limit: int = typer.Option(
        50,
        "--limit",
        "-n",
        help="Maximum notices to show",
    ),
) -> None:
    """List collected notices, latest opening date first."""
    from bidwatch.persistence.db import get_engine, get_session
    from bidwatch.persistence.repo import NoticeRepository

    config = get_config(ctx)
    get_engine(config.database.url)

    with get_session() as session:
        notices = NoticeRepository(session).list_notices(category=category, source=source, limit=limit)

        if not notices:
            console.print("[dim]No notices found.[/dim]")
            return

        table = Table(title="Notices", show_header=True, header_style="bold magenta")
        table.add_column("Number", style="cyan", no_wrap=True)
        table.add_column("Organization")
        table.add_column("Description", max_width=60)
        table.add_column("Category")
        table.add_column("Opening", justify="right")
        table.add_column("Status")

        for notice in notices:
            organization = notice.organization
            org_label = organization.acronym or organization.name if organization else "-"
            table.add_row(
                notice.notice_number,
                org_label,
                notice.description or "",
                notice.category.name if notice.category else "-",
                _fmt_datetime(notice.opening_date),
                notice.status.name if notice.status else "-",
            )

        console.print(table)


@app.command("show")
def show_notice(
    ctx: typer.Context,
    notice_number: str = typer.Argument(..., help="Notice number"),
) -> None:
    """Show one notice with its documents and history."""
    from bidwatch.persistence.db import get_engine, get_session
    from bidwatch.persistence.repo import DocumentRepository, NoticeRepository

    config = get_config(ctx)
    get_engine(config.database.url)

    with get_session() as session:
        repo = NoticeRepository(session)
        notice = repo.get_by_number(notice_number)

        if notice is None:
            err_console.print(f"[red]Notice not found:[/red] {notice_number}")
            raise typer.Exit(1)

        value = f"R$ {notice.estimated_value:,.2f}" if notice.estimated_value is not None else "-"
        lines = [
            f"[bold]Organization:[/bold] {notice.organization.name if notice.organization else '-'}",
            f"[bold]Modality:[/bold] {notice.modality or '-'}",
            f"[bold]Category:[/bold] {notice.category.name if notice.category else '-'}",
            f"[bold]Status:[/bold] {notice.status.name if notice.status else '-'}",
            f"[bold]Opening:[/bold] {_fmt_datetime(notice.opening_date)}",
            f"[bold]Published:[/bold] {_fmt_datetime(notice.published_at, '%d/%m/%Y')}",
            f"[bold]Estimated value:[/bold] {value}",
            f"[bold]Source:[/bold] {notice.source or '-'}",
            f"[bold]Detail page:[/bold] {notice.detail_url or '-'}",
            "",
            notice.description or "",
        ]
        console.print(Panel("\n".join(lines), title=f"[bold]{notice.notice_number}[/bold]", border_style="cyan"))

        documents = DocumentRepository(session).list_for_notice(notice.id)
        if documents:
            docs_table = Table(title="Documents", show_header=True, header_style="bold magenta")
            docs_table.add_column("Name", style="cyan")
            docs_table.add_column("Type")
            docs_table.add_column("Size", justify="right")
            docs_table.add_column("Path")
            for doc in documents:
                size = f"{doc.size_bytes:,}" if doc.size_bytes is not None else "-"
                docs_table.add_row(doc.name, doc.mime_type or "-", size, doc.path)
            console.print(docs_table)

        events = repo.get_events(notice.id)
        if events:
            events_table = Table(title="History", show_header=True, header_style="bold magenta")
            events_table.add_column("When", no_wrap=True)
            events_table.add_column("Event", style="cyan")
            events_table.add_column("Details", max_width=80)
            for event in events:
                events_table.add_row(
                    _fmt_datetime(event.occurred_at),
                    event.title,
                    event.description or "",
                )
            console.print(events_table)
