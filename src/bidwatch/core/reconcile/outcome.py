"""
Per-record reconciliation outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class OutcomeTag(str, Enum):
    """What reconciliation did with one record."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class PerRecordOutcome:
    """Outcome of reconciling one record, keyed by notice number."""

    notice_number: str
    outcome: OutcomeTag
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "notice_number": self.notice_number,
            "outcome": self.outcome.value,
            "message": self.message,
        }
