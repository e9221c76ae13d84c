"""
Timezone helpers.

SQLite hands back naive datetimes even for timezone-aware columns, so every
comparison against "now" goes through as_utc().
"""
from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def today() -> date:
    """Current UTC date"""
    return utcnow().date()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length"""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    # Last day of target month
    if month == 12:
        next_month_first = date(year + 1, 1, 1)
    else:
        next_month_first = date(year, month + 1, 1)
    last_day = (next_month_first - date(year, month, 1)).days
    return date(year, month, min(value.day, last_day))


def add_years(value: date, years: int) -> date:
    """Shift a date by whole years (Feb 29 becomes Feb 28)"""
    return add_months(value, years * 12)
