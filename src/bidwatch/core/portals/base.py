"""
Portal adapter interface and collection run types.

Defines the contract every portal adapter fulfils and the result it
returns to the scheduler or CLI.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Mapping
from uuid import uuid4

from bidwatch.core.reconcile.outcome import OutcomeTag, PerRecordOutcome

if TYPE_CHECKING:
    from bidwatch.core.extract.base import DetailRecord


PORTAL_DATE_FORMAT = "%d/%m/%Y"
DEFAULT_LOOKBACK_DAYS = 7


def parse_date_param(value: Any) -> date:
    """Parse a date parameter given as a date, "dd/mm/yyyy" or ISO "yyyy-mm-dd".

    Raises:
        ValueError: If the value is not a recognizable date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    for fmt in (PORTAL_DATE_FORMAT, "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Invalid date: {value!r} (expected dd/mm/yyyy or yyyy-mm-dd)")


# =============================================================================
# Request Types
# =============================================================================


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of publication dates to collect."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Date range start {self.start} is after end {self.end}")

    @classmethod
    def last_days(cls, days: int = DEFAULT_LOOKBACK_DAYS, today: date | None = None) -> "DateRange":
        """Range from `days` days ago up to today."""
        today = today or date.today()
        return cls(start=today - timedelta(days=days), end=today)

    def format(self, fmt: str = PORTAL_DATE_FORMAT) -> tuple[str, str]:
        return self.start.strftime(fmt), self.end.strftime(fmt)

    def __str__(self) -> str:
        start, end = self.format()
        return f"{start} - {end}"


@dataclass(frozen=True)
class CollectionFilters:
    """Optional search filters; empty strings mean "any"."""

    modality: str = ""
    situation: str = ""
    organization: str = ""
    notice_type: str = ""


@dataclass(frozen=True)
class CollectionParams:
    """Date range plus filters for one collection."""

    date_range: DateRange
    filters: CollectionFilters = field(default_factory=CollectionFilters)

    @classmethod
    def from_mapping(
        cls,
        params: Mapping[str, Any] | None = None,
        default_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> "CollectionParams":
        """Build params from a plain mapping (scheduler or CLI input).

        Recognized keys: start, end, days, modality, situation,
        organization, notice_type. Without start, the range covers the
        last `days` (default 7) days up to end (default today).

        Raises:
            ValueError: On malformed dates or a reversed range
        """
        params = dict(params or {})

        end = parse_date_param(params["end"]) if params.get("end") else date.today()
        if params.get("start"):
            date_range = DateRange(start=parse_date_param(params["start"]), end=end)
        else:
            date_range = DateRange.last_days(int(params.get("days", default_days)), today=end)

        filters = CollectionFilters(
            modality=str(params.get("modality") or ""),
            situation=str(params.get("situation") or ""),
            organization=str(params.get("organization") or ""),
            notice_type=str(params.get("notice_type") or ""),
        )
        return cls(date_range=date_range, filters=filters)


# =============================================================================
# Run Result
# =============================================================================


@dataclass
class CollectionRun:
    """Result of one collection invocation.

    Not persisted; returned to the caller and logged.
    """

    portal: str
    date_range: DateRange | None = None
    outcomes: list[PerRecordOutcome] = field(default_factory=list)
    success: bool = True
    message: str = ""
    # Run-level failure that may succeed on a later attempt (transient fetch error)
    retryable: bool = False

    run_id: str = field(default_factory=lambda: uuid4().hex[:12])
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    @classmethod
    def failed(cls, portal: str, message: str, date_range: DateRange | None = None) -> "CollectionRun":
        """A run that ended before any record was processed."""
        run = cls(portal=portal, date_range=date_range, success=False, message=message)
        run.finished_at = run.started_at
        return run

    def add(self, outcome: PerRecordOutcome) -> None:
        self.outcomes.append(outcome)

    def extend(self, outcomes: list[PerRecordOutcome]) -> None:
        self.outcomes.extend(outcomes)

    def count(self, tag: OutcomeTag) -> int:
        return sum(1 for o in self.outcomes if o.outcome is tag)

    @property
    def counts(self) -> dict[str, int]:
        return {tag.value: self.count(tag) for tag in OutcomeTag}

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def finish(self, message: str | None = None) -> "CollectionRun":
        """Stamp the end time and build the summary message."""
        self.finished_at = datetime.now(timezone.utc)
        if message is not None:
            self.message = message
        else:
            counts = self.counts
            self.message = (
                f"Collection finished: {counts['created']} new, {counts['updated']} updated, "
                f"{counts['unchanged']} unchanged, {counts['failed']} failed."
            )
        return self

    def to_result(self) -> dict[str, Any]:
        """Run result handed back to the scheduler or caller."""
        counts = self.counts
        return {
            "success": self.success,
            "message": self.message,
            "created": counts["created"],
            "updated": counts["updated"],
            "unchanged": counts["unchanged"],
            "failed": counts["failed"],
            "details": [o.to_dict() for o in self.outcomes],
        }


# =============================================================================
# Adapter Interface
# =============================================================================


class PortalAdapter(ABC):
    """Collection capability for one procurement portal."""

    @property
    @abstractmethod
    def portal_id(self) -> str:
        """Portal identifier."""
        pass

    @property
    def implemented(self) -> bool:
        return True

    @abstractmethod
    async def collect(self, date_range: DateRange, filters: CollectionFilters) -> CollectionRun:
        """Collect and reconcile notices published in a date range.

        Row-level problems are reported in the run's outcomes; the
        method itself only fails for programming errors.
        """
        pass

    @abstractmethod
    async def fetch_detail(self, url: str) -> DetailRecord | None:
        """Fetch a notice detail page; None if it cannot be read."""
        pass
