"""
e3d_commerce.formatting

Display formatting for prices, numbers, dates and file sizes.

Responsibilities:
- Render values the way the storefront shows them (en-US conventions).
- Stay free of I/O so both API responses and the seed script can use them.
"""

from __future__ import annotations

import math
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

DateStyle = Literal["short", "medium", "long"]

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "CA$",
    "AUD": "A$",
}

FILE_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB")


def _quantize(value: Decimal | float | int, digits: int) -> Decimal:
    exp = Decimal(1).scaleb(-digits)
    return Decimal(str(value)).quantize(exp, rounding=ROUND_HALF_UP)


def format_currency(value: Decimal | float | int, currency: str = "USD") -> str:
    """Format a monetary amount, e.g. ``format_currency(1234.56) == "$1,234.56"``."""
    amount = _quantize(value, 2)
    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_number(value: Decimal | float | int, max_digits: int = 3) -> str:
    """Thousands separators, at most `max_digits` decimals, trailing zeros dropped."""
    text = f"{_quantize(value, max_digits):,.{max_digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percent(value: Decimal | float | int, digits: int = 0) -> str:
    return f"{_quantize(Decimal(str(value)) * 100, digits):,.{digits}f}%"


def _as_datetime(value: date | datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(value)


def _clock(d: datetime, *, seconds: bool = False) -> str:
    hour = d.hour % 12 or 12
    suffix = "AM" if d.hour < 12 else "PM"
    if seconds:
        return f"{hour}:{d.minute:02d}:{d.second:02d} {suffix}"
    return f"{hour}:{d.minute:02d} {suffix}"


def format_date(value: date | datetime | str, style: DateStyle = "medium") -> str:
    d = _as_datetime(value)
    if style == "long":
        return f"{d:%A}, {d:%B} {d.day}, {d.year}"
    return f"{d:%b} {d.day}, {d.year}"


def format_datetime(value: date | datetime | str, style: DateStyle = "medium") -> str:
    d = _as_datetime(value)
    if style == "long":
        return f"{format_date(d, 'long')} at {_clock(d, seconds=True)}"
    return f"{format_date(d, style)}, {_clock(d)}"


_MINUTE = 60
_HOUR = _MINUTE * 60
_DAY = _HOUR * 24
_WEEK = _DAY * 7
_MONTH = _DAY * 30
_YEAR = _DAY * 365

# Words used instead of "1 <unit> ago" / "in 1 <unit>" / "0 <unit>".
_NAMED_OFFSETS = {
    ("second", 0): "now",
    ("minute", 0): "this minute",
    ("hour", 0): "this hour",
    ("day", 0): "today",
    ("day", -1): "yesterday",
    ("day", 1): "tomorrow",
    ("week", -1): "last week",
    ("week", 1): "next week",
    ("month", -1): "last month",
    ("month", 1): "next month",
    ("year", -1): "last year",
    ("year", 1): "next year",
}


def _relative(amount: int, unit: str) -> str:
    named = _NAMED_OFFSETS.get((unit, amount))
    if named is not None:
        return named
    n = abs(amount)
    label = unit if n == 1 else f"{unit}s"
    return f"{n} {label} ago" if amount < 0 else f"in {n} {label}"


def format_relative_time(value: datetime | str, now: datetime | None = None) -> str:
    """Describe `value` relative to `now`, e.g. "2 days ago" or "yesterday".

    Naive datetimes are treated as UTC. Months are 30 days and years 365 days.
    """
    d = _as_datetime(value)
    current = now or datetime.now(UTC)
    if d.tzinfo is None:
        d = d.replace(tzinfo=UTC)
    if current.tzinfo is None:
        current = current.replace(tzinfo=UTC)

    diff = math.floor((current - d).total_seconds())
    if diff < _MINUTE:
        return _relative(-diff, "second")
    if diff < _HOUR:
        return _relative(-(diff // _MINUTE), "minute")
    if diff < _DAY:
        return _relative(-(diff // _HOUR), "hour")
    if diff < _WEEK:
        return _relative(-(diff // _DAY), "day")
    if diff < _MONTH:
        return _relative(-(diff // _WEEK), "week")
    if diff < _YEAR:
        return _relative(-(diff // _MONTH), "month")
    return _relative(-(diff // _YEAR), "year")


def format_file_size(size_bytes: int, decimals: int = 2) -> str:
    """Human-readable size in base-1024 units, e.g. ``1500000 -> "1.43 MB"``."""
    if size_bytes <= 0:
        return "0 Bytes"
    idx = 0
    while size_bytes >= 1024 ** (idx + 1) and idx < len(FILE_SIZE_UNITS) - 1:
        idx += 1
    scaled = round(size_bytes / 1024**idx, decimals)
    return f"{scaled:g} {FILE_SIZE_UNITS[idx]}"


def format_phone(phone: str, pattern: str = "(xxx) xxx-xxxx") -> str:
    digits = [c for c in phone if c.isdigit()]
    if len(digits) < 10:
        return phone
    remaining = iter(digits)
    return "".join(next(remaining, ch) if ch == "x" else ch for ch in pattern)


def truncate_text(text: str, length: int = 50, ellipsis: str = "...") -> str:
    if len(text) <= length:
        return text
    return text[: max(length - len(ellipsis), 0)] + ellipsis


def to_title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))
