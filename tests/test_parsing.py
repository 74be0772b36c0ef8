"""Tests for field parsing and record normalization."""

from datetime import datetime
from decimal import Decimal

import pytest

from bidwatch.core.errors import FieldFormatError
from bidwatch.core.extract.base import RawRecord
from bidwatch.core.normalize.canonical import NormalizedRecord, normalize_record, normalize_records
from bidwatch.core.normalize.parsing import (
    clean_text,
    parse_currency,
    parse_day_date,
    parse_opening_date,
    to_decimal_amount,
)


def test_parse_opening_date_fixed_format():
    assert parse_opening_date("15/03/2024 14:30") == datetime(2024, 3, 15, 14, 30)


@pytest.mark.parametrize("text", ["not-a-date", "", None, "2024-03-15 14:30", "15/03/2024"])
def test_parse_opening_date_returns_none_for_malformed_input(text):
    assert parse_opening_date(text) is None


def test_parse_day_date_accepts_optional_time():
    assert parse_day_date("01/03/2024") == datetime(2024, 3, 1)
    assert parse_day_date("01/03/2024 09:15") == datetime(2024, 3, 1, 9, 15)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("R$ 1.234,56", Decimal("1234.56")),
        ("R$ 1.234.567,89", Decimal("1234567.89")),
        ("1234,5", Decimal("1234.50")),
        ("850", Decimal("850.00")),
        ("BRL 12.000,00", Decimal("12000.00")),
    ],
)
def test_parse_currency_brazilian_format(text, expected):
    assert parse_currency(text) == expected


@pytest.mark.parametrize("text", ["a consultar", "", None, "1,234.56", "12.34,00", "R$"])
def test_parse_currency_returns_none_for_malformed_input(text):
    assert parse_currency(text) is None


def test_to_decimal_amount_raises_field_format_error():
    with pytest.raises(FieldFormatError) as exc_info:
        to_decimal_amount("sem valor")
    assert exc_info.value.value == "sem valor"


def test_clean_text_treats_blank_as_absent():
    assert clean_text("   ") is None
    assert clean_text("\n  Pregão   Eletrônico \t") == "Pregão Eletrônico"


def test_normalize_record_nulls_malformed_fields():
    raw = RawRecord(
        notice_number=" 010/2024 ",
        description="  ",
        organization="Ministério da Saúde",
        opening_date="a definir",
        modality="Pregão",
        detail_url=None,
    )

    record = normalize_record(raw, source="ComprasNet")

    assert record == NormalizedRecord(
        notice_number="010/2024",
        description=None,
        organization="Ministério da Saúde",
        opening_date=None,
        modality="Pregão",
        detail_url=None,
        source="ComprasNet",
    )


def test_normalize_records_drops_rows_without_notice_number():
    rows = [
        RawRecord(notice_number="", description="sem número"),
        RawRecord(notice_number="011/2024", opening_date="01/04/2024 08:00"),
    ]

    records = list(normalize_records(rows, source="ComprasNet"))

    assert [r.notice_number for r in records] == ["011/2024"]
    assert records[0].opening_date == datetime(2024, 4, 1, 8, 0)


def test_normalized_record_requires_notice_number():
    with pytest.raises(ValueError):
        NormalizedRecord(notice_number="  ")
