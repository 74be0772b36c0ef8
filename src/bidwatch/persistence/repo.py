"""
Repository pattern for database operations.

Provides find-or-create for lookup entities and CRUD for notices,
documents and their history.
"""

from __future__ import annotations

from typing import Any, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from .models import (
    Category,
    Document,
    Notice,
    NoticeEvent,
    Notification,
    Organization,
    Status,
)

NamedModel = TypeVar("NamedModel", Organization, Category, Status)


# =============================================================================
# Lookup Repository
# =============================================================================


class LookupRepository:
    """Find-or-create for Organization, Category and Status.

    Names are the dedup key and are unique in the schema. A concurrent
    insert of the same name loses on the unique constraint; the loser's
    SAVEPOINT is rolled back and the winner's row is returned instead.
    """

    def __init__(self, session: Session):
        self.session = session

    def _get_by_name(self, model: type[NamedModel], name: str) -> NamedModel | None:
        stmt = select(model).where(model.name == name)
        return self.session.execute(stmt).scalar_one_or_none()

    def _get_or_create(
        self,
        model: type[NamedModel],
        name: str,
        **defaults: Any,
    ) -> tuple[NamedModel, bool]:
        existing = self._get_by_name(model, name)
        if existing is not None:
            return existing, False

        try:
            with self.session.begin_nested():
                obj = model(name=name, **defaults)
                self.session.add(obj)
                self.session.flush()
            return obj, True
        except IntegrityError:
            existing = self._get_by_name(model, name)
            if existing is None:
                raise
            return existing, False

    def get_or_create_organization(
        self,
        name: str,
        acronym: str | None = None,
    ) -> tuple[Organization, bool]:
        """Find or create an organization by name.

        Returns:
            Tuple of (organization, created)
        """
        return self._get_or_create(Organization, name, acronym=acronym)

    def get_or_create_category(
        self,
        name: str,
        description: str | None = None,
    ) -> tuple[Category, bool]:
        return self._get_or_create(Category, name, description=description)

    def get_or_create_status(
        self,
        name: str,
        description: str | None = None,
        color: str | None = None,
    ) -> tuple[Status, bool]:
        return self._get_or_create(Status, name, description=description, color=color)

    def list_categories(self) -> Sequence[Category]:
        stmt = select(Category).order_by(Category.name)
        return self.session.execute(stmt).scalars().all()


# =============================================================================
# Notice Repository
# =============================================================================


class NoticeRepository:
    """Repository for Notice CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, notice_id: int) -> Notice | None:
        """Get notice by ID."""
        return self.session.get(Notice, notice_id)

    def get_by_number(self, notice_number: str) -> Notice | None:
        """Get notice by its natural key."""
        stmt = select(Notice).where(Notice.notice_number == notice_number)
        return self.session.execute(stmt).scalar_one_or_none()

    def create(self, notice_number: str, **fields: Any) -> Notice:
        """Create a new notice and flush it to obtain its ID."""
        notice = Notice(notice_number=notice_number, **fields)
        self.session.add(notice)
        self.session.flush()
        return notice

    def list_notices(
        self,
        category: str | None = None,
        source: str | None = None,
        include_deleted: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Notice]:
        """List notices, newest opening date first."""
        stmt = select(Notice).options(
            selectinload(Notice.organization),
            selectinload(Notice.category),
            selectinload(Notice.status),
        )

        if category is not None:
            stmt = stmt.join(Notice.category).where(Category.name == category)
        if source is not None:
            stmt = stmt.where(Notice.source == source)
        if not include_deleted:
            stmt = stmt.where(Notice.deleted_at.is_(None))

        stmt = stmt.order_by(Notice.opening_date.desc().nullslast(), Notice.id.desc())
        stmt = stmt.limit(limit).offset(offset)

        return self.session.execute(stmt).scalars().all()

    def count_by_category(self) -> dict[str, int]:
        """Count notices grouped by category name."""
        stmt = (
            select(Category.name, func.count(Notice.id))
            .join(Notice, Notice.category_id == Category.id)
            .where(Notice.deleted_at.is_(None))
            .group_by(Category.name)
        )
        return {name: count for name, count in self.session.execute(stmt).all()}

    def get_events(self, notice_id: int, limit: int = 100) -> Sequence[NoticeEvent]:
        """Get the history of a notice, oldest first."""
        stmt = (
            select(NoticeEvent)
            .where(NoticeEvent.notice_id == notice_id)
            .order_by(NoticeEvent.occurred_at.asc(), NoticeEvent.id.asc())
            .limit(limit)
        )
        return self.session.execute(stmt).scalars().all()

    def get_notifications(self, notice_id: int) -> Sequence[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.notice_id == notice_id)
            .order_by(Notification.created_at.asc())
        )
        return self.session.execute(stmt).scalars().all()


# =============================================================================
# Document Repository
# =============================================================================


class DocumentRepository:
    """Repository for Document attachments."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        notice_id: int,
        name: str,
        path: str,
        url: str | None = None,
        mime_type: str | None = None,
        size_bytes: int | None = None,
        kind: str = "notice",
    ) -> Document:
        document = Document(
            notice_id=notice_id,
            name=name,
            path=path,
            url=url,
            mime_type=mime_type,
            size_bytes=size_bytes,
            kind=kind,
        )
        self.session.add(document)
        self.session.flush()
        return document

    def list_for_notice(self, notice_id: int) -> Sequence[Document]:
        stmt = select(Document).where(Document.notice_id == notice_id).order_by(Document.id)
        return self.session.execute(stmt).scalars().all()
