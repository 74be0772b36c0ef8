"""
Configuration and logging setup shared by CLI commands.
"""

from __future__ import annotations

import typer
from rich.console import Console

from bidwatch.core.config.loader import ConfigError, load_app_config
from bidwatch.core.config.models import AppConfig
from bidwatch.core.logging import setup_logging

err_console = Console(stderr=True)


def load_config_or_exit() -> AppConfig:
    """Load app.yaml, printing the problem and exiting with status 1 on error."""
    try:
        return load_app_config()
    except ConfigError as e:
        err_console.print(f"[red]Configuration error:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)


def get_config(ctx: typer.Context | None = None) -> AppConfig:
    """Config loaded by the root callback, or loaded now."""
    if ctx is not None:
        root = ctx.find_root()
        if isinstance(root.obj, AppConfig):
            return root.obj
    return load_config_or_exit()


def configure_logging(config: AppConfig, verbose: bool = False) -> None:
    setup_logging(
        level="DEBUG" if verbose else config.logging.level,
        log_file=config.logging.file,
        json_format=config.logging.json_format,
        rich_console=config.logging.rich_console,
    )
