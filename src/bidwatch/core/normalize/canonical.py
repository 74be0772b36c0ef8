"""
Canonical notice record.

Provides a clean interface between raw extraction and reconciliation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterable, Iterator

from bidwatch.core.logging import get_logger

from .parsing import clean_text, parse_opening_date

if TYPE_CHECKING:
    from bidwatch.core.extract.base import RawRecord

logger = get_logger("normalize")


@dataclass(frozen=True)
class NormalizedRecord:
    """Typed candidate notice, ready for reconciliation.

    notice_number is the natural key and is never empty.
    """

    notice_number: str
    description: str | None = None
    organization: str | None = None
    opening_date: datetime | None = None
    modality: str | None = None
    detail_url: str | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        if not self.notice_number or not self.notice_number.strip():
            raise ValueError("notice_number must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_record(raw: RawRecord, source: str | None = None) -> NormalizedRecord | None:
    """Normalize one RawRecord.

    Malformed fields become None; the record itself is only dropped
    (None is returned) when it has no notice number.

    Args:
        raw: Extracted row
        source: Source tag, used when the row carries none

    Returns:
        NormalizedRecord, or None if the notice number is empty
    """
    notice_number = clean_text(raw.notice_number)
    if notice_number is None:
        logger.debug("Dropping row %d without a notice number", raw.row_index)
        return None

    opening_text = clean_text(raw.opening_date)
    opening_date = parse_opening_date(opening_text)
    if opening_text and opening_date is None:
        logger.debug("Unparseable opening date %r for %s", opening_text, notice_number)

    return NormalizedRecord(
        notice_number=notice_number,
        description=clean_text(raw.description),
        organization=clean_text(raw.organization),
        opening_date=opening_date,
        modality=clean_text(raw.modality),
        detail_url=clean_text(raw.detail_url),
        source=clean_text(raw.source) or clean_text(source),
    )


def normalize_records(
    rows: Iterable[RawRecord],
    source: str | None = None,
) -> Iterator[NormalizedRecord]:
    """Normalize rows in order, skipping rows without a notice number."""
    for raw in rows:
        record = normalize_record(raw, source=source)
        if record is not None:
            yield record
