"""Tests for Vietnamese money-in-words and date parsing."""

from datetime import date

import pytest

from backend.esign.transform.vietnamese import (
    amount_in_words,
    format_vietnamese_date,
    parse_date_to_iso,
)


@pytest.mark.parametrize(
    "amount,expected",
    [
        (0, "không đồng"),
        (5, "Năm đồng"),
        (15, "Mười lăm đồng"),
        (21, "Hai mươi mốt đồng"),
        (105, "Một trăm lẻ năm đồng"),
        (1000, "Một nghìn đồng"),
        (1500000, "Một triệu năm trăm nghìn đồng"),
        (2000000000, "Hai tỷ đồng"),
    ],
)
def test_amount_in_words(amount: int, expected: str) -> None:
    assert amount_in_words(amount) == expected


def test_negative_amount() -> None:
    assert amount_in_words(-5) == "âm Năm đồng"


def test_format_vietnamese_date() -> None:
    assert format_vietnamese_date(date(2025, 3, 4)) == "ngày 4 tháng 3 năm 2025"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("ngày 4 tháng 3 năm 2025", "2025-03-04"),
        ("04/03/2025", "2025-03-04"),
        ("2025-03-04", "2025-03-04"),
        ("2025-03-04T10:00:00Z", "2025-03-04T10:00:00+00:00"),
        ("31/02/2025", None),
        ("", None),
        ("soon", None),
    ],
)
def test_parse_date_to_iso(value: str, expected: str | None) -> None:
    assert parse_date_to_iso(value) == expected
