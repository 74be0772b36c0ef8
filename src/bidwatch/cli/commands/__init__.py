"""CLI command modules."""

from . import collect, db, notices, schedule

__all__ = [
    "collect",
    "db",
    "notices",
    "schedule",
]
