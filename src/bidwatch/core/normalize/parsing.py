"""
Parsing utilities for normalizing extracted data.

Handles date, currency and free-text fields as printed by Brazilian
procurement portals (day-first dates, "." thousands separator,
"," decimal separator). Lenient parsers return None on malformed input;
the strict variants raise FieldFormatError.
"""

from __future__ import annotations

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Sequence

from bidwatch.core.errors import FieldFormatError


# =============================================================================
# Formats
# =============================================================================


OPENING_DATE_FORMAT = "%d/%m/%Y %H:%M"
DAY_DATE_FORMATS = ("%d/%m/%Y %H:%M", "%d/%m/%Y")

CENTS = Decimal("0.01")

# Grouped ("1.234.567,89") or ungrouped ("1234567,89") amounts
_AMOUNT_PATTERN = re.compile(r"^-?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?$")
_CURRENCY_NOISE = re.compile(r"(?i)r\$|brl|\s")


# =============================================================================
# Text
# =============================================================================


def normalize_whitespace(text: str | None) -> str:
    """Collapse runs of whitespace (including nbsp) to single spaces."""
    if text is None:
        return ""
    return " ".join(text.split())


def clean_text(text: str | None) -> str | None:
    """Trim text; an empty result is treated as absent."""
    cleaned = normalize_whitespace(text)
    return cleaned or None


# =============================================================================
# Dates
# =============================================================================


def to_datetime(text: str | None, formats: Sequence[str]) -> datetime:
    """Parse text with the first matching format.

    Raises:
        FieldFormatError: If no format matches
    """
    value = normalize_whitespace(text)
    if not value:
        raise FieldFormatError("Empty date value", value=text)

    for fmt in formats:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue

    raise FieldFormatError(f"Unrecognized date: {value!r}", value=text)


def parse_opening_date(text: str | None) -> datetime | None:
    """Parse a listing opening date in the fixed "dd/mm/yyyy HH:MM" format.

    Returns None for anything else; a missing date means "unknown",
    never "today".

    Examples:
        >>> parse_opening_date("15/03/2024 14:30")
        datetime.datetime(2024, 3, 15, 14, 30)
        >>> parse_opening_date("not-a-date") is None
        True
    """
    try:
        return to_datetime(text, (OPENING_DATE_FORMAT,))
    except FieldFormatError:
        return None


def parse_day_date(text: str | None) -> datetime | None:
    """Parse a "dd/mm/yyyy" date with an optional "HH:MM" time."""
    try:
        return to_datetime(text, DAY_DATE_FORMATS)
    except FieldFormatError:
        return None


# =============================================================================
# Currency
# =============================================================================


def to_decimal_amount(text: str | None) -> Decimal:
    """Parse a Brazilian-formatted amount into a Decimal with two places.

    Raises:
        FieldFormatError: If the text is not a well-formed amount
    """
    if text is None:
        raise FieldFormatError("Empty amount", value=text)

    value = _CURRENCY_NOISE.sub("", text)
    if not _AMOUNT_PATTERN.match(value):
        raise FieldFormatError(f"Malformed amount: {text!r}", value=text)

    value = value.replace(".", "").replace(",", ".")
    try:
        return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise FieldFormatError(f"Malformed amount: {text!r}", value=text) from e


def parse_currency(text: str | None) -> Decimal | None:
    """Parse a currency amount such as "R$ 1.234.567,89".

    Examples:
        >>> parse_currency("R$ 1.234,56")
        Decimal('1234.56')
        >>> parse_currency("a consultar") is None
        True
    """
    try:
        return to_decimal_amount(text)
    except FieldFormatError:
        return None
