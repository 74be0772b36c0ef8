"""
Logging setup for BidWatch.

Console output goes through Rich (or a plain stream handler), file
output is one JSON object per line. Collection code logs through a
ContextualLogger so every line carries the portal and run it belongs to.
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

if TYPE_CHECKING:
    from rich.console import Console


ROOT_LOGGER = "bidwatch"

# Record attributes copied into JSON lines and console prefixes
CONTEXT_FIELDS = ("portal", "run_id", "notice_number", "url")

# Third-party loggers that are chatty at INFO (httpx logs every request)
QUIET_LOGGERS = ("httpx", "httpcore", "apscheduler", "aiosqlite")

LEVEL_STYLES = {
    logging.DEBUG: "dim",
    logging.INFO: "default",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "bold red",
}

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def json_dumps(obj: Any) -> str:
    """Serialize to a JSON string; dates, Decimals and paths fall back to str()."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Context fields present on a record, in CONTEXT_FIELDS order."""
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


# =============================================================================
# Formatters and Handlers
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record, timestamped when the record was created."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json_dumps(entry)


class RichConsoleHandler(logging.Handler):
    """Console handler printing "[portal run] message" lines through Rich."""

    def __init__(self, console: "Console | None" = None, level: int = logging.NOTSET):
        super().__init__(level)
        if console is None:
            from rich.console import Console
            console = Console(stderr=True)
        self.console = console

    @staticmethod
    def prefix(record: logging.LogRecord) -> str:
        context = record_context(record)
        tag = " ".join(str(context[key]) for key in ("portal", "run_id") if key in context)
        return f"[cyan]\\[{tag}][/cyan] " if tag else ""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            style = LEVEL_STYLES.get(record.levelno, "default")
            self.console.print(
                f"{self.prefix(record)}[{style}]{self.format(record)}[/{style}]",
                highlight=False,
            )
            if record.exc_info:
                self.console.print_exception()
        except Exception:
            self.handleError(record)


# =============================================================================
# Setup
# =============================================================================


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name!r}")
    return level


def setup_logging(
    level: str = "INFO",
    log_file: Path | str | None = None,
    json_format: bool = True,
    rich_console: bool = True,
) -> logging.Logger:
    """Configure the bidwatch logger tree. Safe to call more than once.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file; always receives DEBUG and above
        json_format: JSON lines in the log file instead of plain text
        rich_console: Rich console output instead of a plain stderr stream

    Returns:
        The "bidwatch" logger
    """
    console_level = _level(level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.handlers.clear()

    console_handler: logging.Handler
    if rich_console:
        console_handler = RichConsoleHandler()
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    console_handler.setLevel(console_level)
    logger.addHandler(console_handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        )
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(console_level, logging.WARNING))

    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger under the bidwatch tree ("fetch" -> "bidwatch.fetch")."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


# =============================================================================
# Contextual Logging
# =============================================================================


class ContextualLogger(logging.LoggerAdapter):
    """Adapter that stamps portal / run_id / notice_number onto every record.

    Explicit extra= values passed at the call site win over the adapter's.
    """

    def __init__(self, logger: logging.Logger, **context: Any):
        super().__init__(logger, {k: v for k, v in context.items() if v is not None})

    @property
    def context(self) -> dict[str, Any]:
        return dict(self.extra)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextualLogger":
        """Copy of this logger with more (or replaced) context."""
        return ContextualLogger(self.logger, **{**self.extra, **context})


def get_contextual_logger(name: str | None = None, **context: Any) -> ContextualLogger:
    """Contextual logger, e.g. get_contextual_logger("portals.comprasnet", portal="comprasnet")."""
    return ContextualLogger(get_logger(name), **context)
