"""
Month scope keys.

Order sheets are partitioned by calendar month; the scope key is the
`YYYY-MM` string the remote uses to pick the month file.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def current_local_month(today: Optional[date] = None) -> str:
    """Month of the local calendar date, `YYYY-MM`."""
    today = today or date.today()
    return f"{today.year:04d}-{today.month:02d}"


def current_utc_month() -> str:
    now = datetime.now(timezone.utc)
    return f"{now.year:04d}-{now.month:02d}"


def parse_month(month: str) -> tuple[int, int]:
    """Split `YYYY-MM` into (year, month); raises ValueError on anything else."""
    try:
        year_text, month_text = month.split("-", 1)
        year, number = int(year_text), int(month_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid month scope '{month}', expected YYYY-MM") from exc
    if not 1 <= number <= 12:
        raise ValueError(f"Invalid month scope '{month}', month out of range")
    return year, number


def shift_month(month: str, step: int) -> str:
    """Move a month scope forward (positive step) or backward."""
    year, number = parse_month(month)
    index = year * 12 + (number - 1) + step
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def month_of(order_date: str) -> str:
    """
    Month an order belongs to: the first seven characters of its date, or the
    current UTC month when the date is too short to carry one.
    """
    if order_date and len(order_date) >= 7:
        return order_date[:7]
    return current_utc_month()


def format_date_display(value: str) -> str:
    """`YYYY-MM-DD` as `DD/MM/YYYY`; anything else is returned unchanged."""
    if not value:
        return ""
    parts = value.split("-")
    if len(parts) == 3 and all(parts):
        year, month, day = parts
        return f"{day}/{month}/{year}"
    return value


__all__ = [
    "current_local_month",
    "current_utc_month",
    "format_date_display",
    "month_of",
    "parse_month",
    "shift_month",
]
