"""Collaborators reached by collection: audit events and notifications."""

from .events import (
    EVENT_DOCUMENTS_DOWNLOADED,
    EVENT_NOTICE_CREATED,
    EVENT_NOTICE_UPDATED,
    EventRecorder,
    SqlEventRecorder,
)
from .notifications import NOTIFICATION_NOTICE_CREATED, Notifier, SqlNotifier

__all__ = [
    "EVENT_DOCUMENTS_DOWNLOADED",
    "EVENT_NOTICE_CREATED",
    "EVENT_NOTICE_UPDATED",
    "EventRecorder",
    "SqlEventRecorder",
    "NOTIFICATION_NOTICE_CREATED",
    "Notifier",
    "SqlNotifier",
]
