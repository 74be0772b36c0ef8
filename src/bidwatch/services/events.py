"""
Notice history (audit) recording.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sqlalchemy.orm import Session

from bidwatch.persistence.models import NoticeEvent, utcnow


# Event types written by collection
EVENT_NOTICE_CREATED = "notice_created"
EVENT_NOTICE_UPDATED = "notice_updated"
EVENT_DOCUMENTS_DOWNLOADED = "documents_downloaded"


class EventRecorder(Protocol):
    """Accepts audit events for a notice.

    actor_id None marks a system-originated event.
    """

    def record(
        self,
        entity_id: int,
        event_type: str,
        title: str,
        description: str | None = None,
        occurred_at: datetime | None = None,
        actor_id: int | None = None,
    ) -> None:
        ...


class SqlEventRecorder:
    """EventRecorder writing NoticeEvent rows in the caller's session.

    Events therefore commit or roll back together with the change they
    describe.
    """

    def __init__(self, session: Session):
        self.session = session

    def record(
        self,
        entity_id: int,
        event_type: str,
        title: str,
        description: str | None = None,
        occurred_at: datetime | None = None,
        actor_id: int | None = None,
    ) -> None:
        event = NoticeEvent(
            notice_id=entity_id,
            event_type=event_type,
            title=title,
            description=description,
            occurred_at=occurred_at or utcnow(),
            actor_id=actor_id,
        )
        self.session.add(event)
        self.session.flush()
