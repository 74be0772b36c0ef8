"""
Notice reconciliation.

Decides, per normalized record, whether to create a notice, update its
collected fields, or leave it alone, and writes the decision together
with its audit event and notification in one transaction.
"""

from __future__ import annotations

from typing import Callable, Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bidwatch.core.classify.acronym import make_acronym
from bidwatch.core.classify.categorizer import DEFAULT_CATEGORY, Categorizer
from bidwatch.core.errors import PersistenceError
from bidwatch.core.logging import get_logger
from bidwatch.core.normalize.canonical import NormalizedRecord
from bidwatch.core.normalize.diff import compute_changes, summarize_changes
from bidwatch.persistence.db import SessionFactory
from bidwatch.persistence.models import Category, Notice, Organization, Status
from bidwatch.persistence.repo import LookupRepository, NoticeRepository
from bidwatch.services.events import (
    EVENT_NOTICE_CREATED,
    EVENT_NOTICE_UPDATED,
    EventRecorder,
    SqlEventRecorder,
)
from bidwatch.services.notifications import NOTIFICATION_NOTICE_CREATED, Notifier, SqlNotifier

from .outcome import OutcomeTag, PerRecordOutcome

logger = get_logger("reconcile")


DEFAULT_STATUS = "New"
DEFAULT_STATUS_DESCRIPTION = "Notice recently identified"
DEFAULT_STATUS_COLOR = "#3498db"

UNKNOWN_ORGANIZATION = "Unknown organization"


def bootstrap_defaults(
    session: Session,
    status_name: str = DEFAULT_STATUS,
    category_name: str = DEFAULT_CATEGORY,
) -> tuple[Status, Category]:
    """Make sure the default status and fallback category exist.

    Idempotent; run once per process before the first collection.
    """
    lookups = LookupRepository(session)
    status, status_created = lookups.get_or_create_status(
        status_name,
        description=DEFAULT_STATUS_DESCRIPTION,
        color=DEFAULT_STATUS_COLOR,
    )
    category, category_created = lookups.get_or_create_category(
        category_name,
        description="Notices that match no category keyword",
    )
    if status_created or category_created:
        logger.info("Created default status '%s' and category '%s'", status_name, category_name)
    return status, category


class Reconciler:
    """Create-or-update-or-ignore decision for collected notices.

    Every record gets its own session and transaction; a failure rolls
    back that record only and is reported as a FAILED outcome.

    Args:
        session_factory: Returns a commit-or-rollback session scope
        categorizer: Assigns categories (default: built-in keyword table)
        event_recorder_factory: Builds an EventRecorder bound to a session
        notifier_factory: Builds a Notifier bound to a session
        reviewer_role: Role notified about new notices
        default_status: Status given to new notices
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        categorizer: Categorizer | None = None,
        event_recorder_factory: Callable[[Session], EventRecorder] = SqlEventRecorder,
        notifier_factory: Callable[[Session], Notifier] = SqlNotifier,
        reviewer_role: str = "analyst",
        default_status: str = DEFAULT_STATUS,
    ):
        self.session_factory = session_factory
        self.categorizer = categorizer or Categorizer()
        self.event_recorder_factory = event_recorder_factory
        self.notifier_factory = notifier_factory
        self.reviewer_role = reviewer_role
        self.default_status = default_status

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def process(self, record: NormalizedRecord) -> PerRecordOutcome:
        """Reconcile one record.

        Never raises: every record yields exactly one outcome.
        """
        try:
            with self.session_factory() as session:
                return self._reconcile(session, record)
        except SQLAlchemyError as e:
            error = PersistenceError(
                f"Database error: {e}",
                notice_number=record.notice_number,
                cause=e,
            )
            return self._failed(record, error)
        except Exception as e:
            return self._failed(record, e)

    def process_all(self, records: Iterable[NormalizedRecord]) -> list[PerRecordOutcome]:
        """Reconcile records sequentially, keeping input order."""
        return [self.process(record) for record in records]

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def _reconcile(self, session: Session, record: NormalizedRecord) -> PerRecordOutcome:
        notices = NoticeRepository(session)
        lookups = LookupRepository(session)

        notice = notices.get_by_number(record.notice_number)
        organization = self._resolve_organization(lookups, record.organization)
        category = self._resolve_category(lookups, record.description)

        if notice is None:
            return self._create(session, notices, lookups, record, organization, category)
        return self._update(session, notice, record)

    def _resolve_organization(self, lookups: LookupRepository, name: str | None) -> Organization:
        name = name or UNKNOWN_ORGANIZATION
        organization, created = lookups.get_or_create_organization(name, acronym=make_acronym(name))
        if created:
            logger.debug("New organization: %s (%s)", name, organization.acronym)
        return organization

    def _resolve_category(self, lookups: LookupRepository, description: str | None) -> Category:
        return self.categorizer.resolve(lookups, description)

    def _create(
        self,
        session: Session,
        notices: NoticeRepository,
        lookups: LookupRepository,
        record: NormalizedRecord,
        organization: Organization,
        category: Category,
    ) -> PerRecordOutcome:
        status, _ = lookups.get_or_create_status(
            self.default_status,
            description=DEFAULT_STATUS_DESCRIPTION,
            color=DEFAULT_STATUS_COLOR,
        )

        notice = notices.create(
            record.notice_number,
            description=record.description,
            modality=record.modality,
            opening_date=record.opening_date,
            detail_url=record.detail_url,
            source=record.source,
            organization=organization,
            category=category,
            status=status,
        )

        self.event_recorder_factory(session).record(
            notice.id,
            EVENT_NOTICE_CREATED,
            "Notice collected automatically",
            description=f"Notice {notice.notice_number} collected from {record.source or 'unknown source'}",
            actor_id=None,
        )
        message = f"A new notice was collected: {notice.notice_number}"
        if record.description:
            message += f" - {record.description}"
        self.notifier_factory(session).notify_by_role(
            NOTIFICATION_NOTICE_CREATED,
            "New notice collected",
            message,
            role_name=self.reviewer_role,
            related_id=notice.id,
        )

        logger.debug("Created notice %s", record.notice_number)
        return PerRecordOutcome(record.notice_number, OutcomeTag.CREATED, "Notice created")

    def _update(self, session: Session, notice: Notice, record: NormalizedRecord) -> PerRecordOutcome:
        changes = compute_changes(notice, record)
        if not changes:
            return PerRecordOutcome(record.notice_number, OutcomeTag.UNCHANGED, "No changes")

        for change in changes:
            change.apply(notice)
        session.flush()

        self.event_recorder_factory(session).record(
            notice.id,
            EVENT_NOTICE_UPDATED,
            "Notice updated by collection",
            description=summarize_changes(changes),
            actor_id=None,
        )

        fields = ", ".join(change.name for change in changes)
        logger.debug("Updated notice %s: %s", record.notice_number, fields)
        return PerRecordOutcome(record.notice_number, OutcomeTag.UPDATED, f"Updated fields: {fields}")

    def _failed(self, record: NormalizedRecord, error: Exception) -> PerRecordOutcome:
        logger.error(
            "Failed to process notice %s: %s",
            record.notice_number,
            error,
            extra={"notice_number": record.notice_number},
        )
        return PerRecordOutcome(record.notice_number, OutcomeTag.FAILED, str(error))
