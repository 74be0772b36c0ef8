"""
Records produced by the HTML extractors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass
class RawRecord:
    """Unvalidated text fields read from one listing row.

    Produced by TableRowExtractor, consumed by normalize_record.
    """

    notice_number: str | None = None
    description: str | None = None
    organization: str | None = None
    opening_date: str | None = None  # Raw text, parsed during normalization
    modality: str | None = None
    detail_url: str | None = None
    source: str | None = None

    row_index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "notice_number": self.notice_number,
            "description": self.description,
            "organization": self.organization,
            "opening_date": self.opening_date,
            "modality": self.modality,
            "detail_url": self.detail_url,
            "source": self.source,
        }


@dataclass
class DocumentLink:
    """A downloadable document referenced by a notice."""

    name: str
    url: str


@dataclass
class DetailRecord:
    """Fields read from a notice's detail page."""

    estimated_value: Decimal | None = None
    published_at: datetime | None = None
    documents: list[DocumentLink] = field(default_factory=list)

    # Every label/value pair on the page, for display
    fields: dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.estimated_value is None and self.published_at is None and not self.documents
