"""
Field-level change detection between a stored notice and a fresh record.

Only the fields listed in MUTABLE_FIELDS are ever overwritten by
collection; organization, category, status, responsible party and any
manually edited fields are left alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from bidwatch.persistence.models import Notice

    from .canonical import NormalizedRecord


# =============================================================================
# Comparators
# =============================================================================


def text_equal(old: str | None, new: str | None) -> bool:
    return (old or None) == (new or None)


def datetime_equal(old: datetime | None, new: datetime | None) -> bool:
    """Compare timestamps to minute precision."""
    if old is None or new is None:
        return old is new
    return old.replace(second=0, microsecond=0, tzinfo=None) == new.replace(
        second=0, microsecond=0, tzinfo=None
    )


# =============================================================================
# Comparison Table
# =============================================================================


@dataclass(frozen=True)
class MutableField:
    """One collection-owned field: how to read, compare and write it."""

    name: str
    stored: Callable[["Notice"], Any]
    incoming: Callable[["NormalizedRecord"], Any]
    assign: Callable[["Notice", Any], None]
    equals: Callable[[Any, Any], bool]


def _set_description(notice: Notice, value: Any) -> None:
    notice.description = value


def _set_modality(notice: Notice, value: Any) -> None:
    notice.modality = value


def _set_opening_date(notice: Notice, value: Any) -> None:
    notice.opening_date = value


def _set_detail_url(notice: Notice, value: Any) -> None:
    notice.detail_url = value


MUTABLE_FIELDS: tuple[MutableField, ...] = (
    MutableField(
        name="description",
        stored=lambda n: n.description,
        incoming=lambda r: r.description,
        assign=_set_description,
        equals=text_equal,
    ),
    MutableField(
        name="modality",
        stored=lambda n: n.modality,
        incoming=lambda r: r.modality,
        assign=_set_modality,
        equals=text_equal,
    ),
    MutableField(
        name="opening_date",
        stored=lambda n: n.opening_date,
        incoming=lambda r: r.opening_date,
        assign=_set_opening_date,
        equals=datetime_equal,
    ),
    MutableField(
        name="detail_url",
        stored=lambda n: n.detail_url,
        incoming=lambda r: r.detail_url,
        assign=_set_detail_url,
        equals=text_equal,
    ),
)


# =============================================================================
# Diff
# =============================================================================


@dataclass
class FieldChange:
    """A single field change."""

    field: MutableField
    old_value: Any
    new_value: Any

    @property
    def name(self) -> str:
        return self.field.name

    def apply(self, notice: Notice) -> None:
        self.field.assign(notice, self.new_value)

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.name,
            "old": _serialize_value(self.old_value),
            "new": _serialize_value(self.new_value),
        }


def compute_changes(notice: Notice, record: NormalizedRecord) -> list[FieldChange]:
    """List the mutable fields whose incoming value differs from the stored one.

    A null incoming value never counts as a change, so a field that
    failed to parse on this run does not erase what is stored.
    """
    changes: list[FieldChange] = []

    for field in MUTABLE_FIELDS:
        new_value = field.incoming(record)
        if new_value is None:
            continue

        old_value = field.stored(notice)
        if not field.equals(old_value, new_value):
            changes.append(FieldChange(field=field, old_value=old_value, new_value=new_value))

    return changes


def summarize_changes(changes: list[FieldChange]) -> str:
    """Human-readable one-line summary of changes."""
    if not changes:
        return "No changes"

    parts = [
        f"{c.name}: {_serialize_value(c.old_value)!s} -> {_serialize_value(c.new_value)!s}"
        for c in changes
    ]
    return "Updated " + "; ".join(parts)


def _serialize_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.strftime("%d/%m/%Y %H:%M")
    return value
