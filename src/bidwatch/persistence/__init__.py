"""Database persistence layer."""

from .db import SessionFactory, get_engine, get_session, init_db
from .models import (
    Base,
    Category,
    Document,
    Notice,
    NoticeEvent,
    Notification,
    Organization,
    RunLock,
    Status,
)
from .repo import DocumentRepository, LookupRepository, NoticeRepository

__all__ = [
    "SessionFactory",
    "get_engine",
    "get_session",
    "init_db",
    "Base",
    "Category",
    "Document",
    "Notice",
    "NoticeEvent",
    "Notification",
    "Organization",
    "RunLock",
    "Status",
    "DocumentRepository",
    "LookupRepository",
    "NoticeRepository",
]
