"""Normalization - field parsing, canonical records and change detection."""

from .parsing import (
    clean_text,
    normalize_whitespace,
    parse_currency,
    parse_day_date,
    parse_opening_date,
)
from .canonical import NormalizedRecord, normalize_record, normalize_records
from .diff import MUTABLE_FIELDS, FieldChange, compute_changes, summarize_changes

__all__ = [
    "clean_text",
    "normalize_whitespace",
    "parse_currency",
    "parse_day_date",
    "parse_opening_date",
    "NormalizedRecord",
    "normalize_record",
    "normalize_records",
    "MUTABLE_FIELDS",
    "FieldChange",
    "compute_changes",
    "summarize_changes",
]
