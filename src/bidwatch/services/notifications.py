"""
Notifications addressed to users or roles.

Role-addressed notifications are stored once, addressed to the role
name; resolving the role to users is left to whoever reads them.
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy.orm import Session

from bidwatch.persistence.models import Notification

NOTIFICATION_NOTICE_CREATED = "notice_created"


class Notifier(Protocol):
    """Accepts notifications about a notice."""

    def notify(
        self,
        type: str,
        title: str,
        message: str,
        recipient_user_id: int,
        related_id: int | None = None,
    ) -> None:
        ...

    def notify_by_role(
        self,
        type: str,
        title: str,
        message: str,
        role_name: str,
        related_id: int | None = None,
    ) -> None:
        ...


class SqlNotifier:
    """Notifier writing Notification rows in the caller's session."""

    def __init__(self, session: Session):
        self.session = session

    def _add(self, notification: Notification) -> None:
        self.session.add(notification)
        self.session.flush()

    def notify(
        self,
        type: str,
        title: str,
        message: str,
        recipient_user_id: int,
        related_id: int | None = None,
    ) -> None:
        self._add(Notification(
            type=type,
            title=title,
            message=message,
            recipient_user_id=recipient_user_id,
            notice_id=related_id,
        ))

    def notify_by_role(
        self,
        type: str,
        title: str,
        message: str,
        role_name: str,
        related_id: int | None = None,
    ) -> None:
        self._add(Notification(
            type=type,
            title=title,
            message=message,
            recipient_role=role_name,
            notice_id=related_id,
        ))
