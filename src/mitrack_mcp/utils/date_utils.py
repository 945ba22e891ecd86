"""
Date utilities for periods, date ranges and ledger timestamps.

Ledger timestamps are Unix seconds in UTC; dates are "YYYY-MM-DD" strings
interpreted in UTC.
"""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

PERIODS = (
    "this_month",
    "last_month",
    "this_year",
    "last_year",
    "last_7_days",
    "last_30_days",
    "last_90_days",
    "ytd",
)


def parse_period(period: str) -> Tuple[str, str]:
    """
    Parse a period string into (start_date, end_date).

    Supported periods:
    - "this_month", "last_month"
    - "this_year", "last_year"
    - "last_7_days", "last_30_days", "last_90_days"
    - "ytd" (year to date)

    Returns:
        Tuple of (start_date, end_date) as "YYYY-MM-DD" strings

    Raises:
        ValueError: If period is not recognized
    """
    today = datetime.now(timezone.utc)

    if period == "this_month":
        return get_month_range(today.year, today.month)

    elif period == "last_month":
        last_day_last_month = today.replace(day=1) - timedelta(days=1)
        return get_month_range(last_day_last_month.year, last_day_last_month.month)

    elif period == "this_year":
        return f"{today.year}-01-01", f"{today.year}-12-31"

    elif period == "last_year":
        year = today.year - 1
        return f"{year}-01-01", f"{year}-12-31"

    elif period in ("last_7_days", "last_30_days", "last_90_days"):
        days = int(period.split("_")[1])
        start = today - timedelta(days=days)
        return start.strftime("%Y-%m-%d"), today.strftime("%Y-%m-%d")

    elif period == "ytd":
        return f"{today.year}-01-01", today.strftime("%Y-%m-%d")

    else:
        raise ValueError(f"Unknown period: {period}")


def get_month_range(year: int, month: int) -> Tuple[str, str]:
    """
    Get the date range for a specific month.

    Raises:
        ValueError: If month is not in valid range (1-12)
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    _, last_day = calendar.monthrange(year, month)
    return f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last_day:02d}"


def date_to_timestamp(date: str, end_of_day: bool = False) -> int:
    """
    Convert a "YYYY-MM-DD" date to a Unix timestamp (UTC).

    Args:
        date: Date string
        end_of_day: Return the last second of the day instead of the first

    Raises:
        ValueError: If date is not a valid YYYY-MM-DD string
    """
    day = datetime.strptime(date, "%Y-%m-%d").replace(tzinfo=timezone.utc)
    if end_of_day:
        day += timedelta(days=1, seconds=-1)
    return int(day.timestamp())


def date_range_to_timestamps(
    start_date: Optional[str], end_date: Optional[str]
) -> Tuple[Optional[int], Optional[int]]:
    """Convert an inclusive date range to inclusive timestamp bounds."""
    start = date_to_timestamp(start_date) if start_date else None
    end = date_to_timestamp(end_date, end_of_day=True) if end_date else None
    return start, end


def format_timestamp(timestamp: int) -> str:
    """Format a Unix timestamp as RFC 3339 in UTC, e.g. 2026-01-15T10:00:00Z."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
