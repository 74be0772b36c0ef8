"""Scheduler service - APScheduler integration."""

from .locks import LockManager
from .service import (
    SchedulerService,
    TransientRunError,
    build_triggers,
    describe_schedule,
    execute_scheduled_collection,
)

__all__ = [
    "LockManager",
    "SchedulerService",
    "TransientRunError",
    "build_triggers",
    "describe_schedule",
    "execute_scheduled_collection",
]
