from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from e3d_commerce.formatting import (
    format_currency,
    format_date,
    format_datetime,
    format_file_size,
    format_number,
    format_percent,
    format_phone,
    format_relative_time,
    to_title_case,
    truncate_text,
)


def test_currency() -> None:
    assert format_currency(1234.56) == "$1,234.56"
    assert format_currency(Decimal("1299.999")) == "$1,300.00"
    assert format_currency(-5) == "-$5.00"
    assert format_currency(10, "EUR") == "€10.00"
    assert format_currency(10, "chf") == "CHF 10.00"


def test_numbers_and_percent() -> None:
    assert format_number(1234.56) == "1,234.56"
    assert format_number(1000000) == "1,000,000"
    assert format_percent(0.75) == "75%"
    assert format_percent(0.1234, digits=1) == "12.3%"


def test_dates() -> None:
    d = datetime(2025, 1, 5, 15, 30, 9)
    assert format_date(d) == "Jan 5, 2025"
    assert format_date(date(2025, 1, 5), "short") == "Jan 5, 2025"
    assert format_date(d, "long") == "Sunday, January 5, 2025"
    assert format_datetime(d) == "Jan 5, 2025, 3:30 PM"
    assert format_datetime(d, "long") == "Sunday, January 5, 2025 at 3:30:09 PM"
    assert format_datetime(datetime(2025, 1, 5, 0, 5)) == "Jan 5, 2025, 12:05 AM"
    assert format_date("2025-01-05") == "Jan 5, 2025"


@pytest.mark.parametrize(
    ("delta", "expected"),
    [
        (timedelta(0), "now"),
        (timedelta(seconds=30), "30 seconds ago"),
        (timedelta(minutes=1), "1 minute ago"),
        (timedelta(hours=5), "5 hours ago"),
        (timedelta(days=1), "yesterday"),
        (timedelta(days=2), "2 days ago"),
        (timedelta(days=8), "last week"),
        (timedelta(days=65), "2 months ago"),
        (timedelta(days=800), "2 years ago"),
    ],
)
def test_relative_time(delta: timedelta, expected: str) -> None:
    now = datetime(2025, 1, 7, 12, 0, 0)
    assert format_relative_time(now - delta, now) == expected


def test_file_size() -> None:
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(512) == "512 Bytes"
    assert format_file_size(1024) == "1 KB"
    assert format_file_size(1500000) == "1.43 MB"
    assert format_file_size(1024**2) == "1 MB"


def test_phone_and_text_helpers() -> None:
    assert format_phone("1234567890") == "(123) 456-7890"
    assert format_phone("+1 (555) 123-4567", "+x (xxx) xxx-xxxx") == "+1 (555) 123-4567"
    assert format_phone("12345") == "12345"
    assert truncate_text("This is a long text that will be truncated", 30) == (
        "This is a long text that wi..."
    )
    assert truncate_text("short") == "short"
    assert to_title_case("hello WORLD") == "Hello World"
