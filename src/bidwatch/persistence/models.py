"""
SQLAlchemy ORM models for BidWatch.

Defines the database schema:
- Organizations / Categories / Statuses: lookup tables keyed by unique name
- Notices: procurement notices keyed by notice number
- Documents: files downloaded for a notice
- NoticeEvents: audit history of a notice
- Notifications: messages addressed to a user or a role
- RunLocks: overlap protection for scheduled collections
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    return datetime.utcnow()


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=utcnow,
        nullable=True,
    )


# =============================================================================
# Lookup Models
# =============================================================================


class Organization(Base, TimestampMixin):
    """Public body that publishes notices."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(500), unique=True, nullable=False, index=True)
    acronym: Mapped[str | None] = mapped_column(String(50), nullable=True)

    notices: Mapped[list["Notice"]] = relationship("Notice", back_populates="organization")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"


class Category(Base, TimestampMixin):
    """Notice category assigned by keyword matching."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    notices: Mapped[list["Notice"]] = relationship("Notice", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"


class Status(Base, TimestampMixin):
    """Workflow status of a notice."""

    __tablename__ = "statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    color: Mapped[str | None] = mapped_column(String(20), nullable=True)

    notices: Mapped[list["Notice"]] = relationship("Notice", back_populates="status")

    def __repr__(self) -> str:
        return f"<Status(id={self.id}, name='{self.name}')>"


# =============================================================================
# Notice Model
# =============================================================================


class Notice(Base, TimestampMixin):
    """Procurement notice.

    Fields sourced from collection (description, modality, opening_date,
    detail_url) are only written by the reconciler. The remaining fields
    are owned by people and survive re-collection untouched.
    """

    __tablename__ = "notices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notice_number: Mapped[str] = mapped_column(String(200), unique=True, nullable=False, index=True)

    # Collected fields
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    modality: Mapped[str | None] = mapped_column(String(200), nullable=True)
    opening_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    detail_url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    source: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Detail page enrichment
    estimated_value: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Manually maintained
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    responsible_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    organization_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("organizations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    category_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("statuses.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    organization: Mapped["Organization | None"] = relationship("Organization", back_populates="notices")
    category: Mapped["Category | None"] = relationship("Category", back_populates="notices")
    status: Mapped["Status | None"] = relationship("Status", back_populates="notices")

    documents: Mapped[list["Document"]] = relationship(
        "Document",
        back_populates="notice",
        cascade="all, delete-orphan",
    )
    events: Mapped[list["NoticeEvent"]] = relationship(
        "NoticeEvent",
        back_populates="notice",
        cascade="all, delete-orphan",
        order_by="NoticeEvent.occurred_at",
    )

    def __repr__(self) -> str:
        return f"<Notice(id={self.id}, number='{self.notice_number}')>"


# =============================================================================
# Document Model
# =============================================================================


class Document(Base, TimestampMixin):
    """File downloaded for a notice."""

    __tablename__ = "documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("notices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False, default="notice")
    url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String(200), nullable=True)
    size_bytes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relative to the documents storage root
    path: Mapped[str] = mapped_column(String(1000), nullable=False)

    notice: Mapped["Notice"] = relationship("Notice", back_populates="documents")

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, name='{self.name}')>"


# =============================================================================
# Event / Notification Models
# =============================================================================


class NoticeEvent(Base):
    """Audit history entry for a notice.

    actor_id is None for events originated by the system (collection).
    """

    __tablename__ = "notice_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notice_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("notices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    event_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    notice: Mapped["Notice"] = relationship("Notice", back_populates="events")

    __table_args__ = (
        Index("ix_notice_event_type_occurred", "event_type", "occurred_at"),
    )

    def __repr__(self) -> str:
        return f"<NoticeEvent(id={self.id}, type='{self.event_type}', notice_id={self.notice_id})>"


class Notification(Base):
    """Message addressed to one user or to every holder of a role."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    recipient_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    recipient_role: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    notice_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("notices.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        recipient = self.recipient_role or self.recipient_user_id
        return f"<Notification(id={self.id}, type='{self.type}', to='{recipient}')>"


# =============================================================================
# Run Lock Model
# =============================================================================


class RunLock(Base):
    """Lock row preventing overlapping runs of the same scheduled job."""

    __tablename__ = "run_locks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    lock_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    acquired_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    holder_id: Mapped[str] = mapped_column(String(100), nullable=False)

    def __repr__(self) -> str:
        return f"<RunLock {self.lock_name} held by {self.holder_id} until {self.expires_at:%Y-%m-%d %H:%M}>"
