from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, timezone

from fees_dashboard.domain.entities.fee_series import DateRange


DEFAULT_RANGE_DAYS = 90


def normalize_day(value: date | datetime) -> date:
    """Truncate a timestamp to its UTC calendar day.

    Naive datetimes are read as UTC. Plain dates are already days.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(timezone.utc).date()
    return value


def iter_days(date_range: DateRange) -> Iterator[date]:
    return iter(date_range)


def days_between(start: date, end: date) -> int:
    return (end - start).days


def day_timestamp(day: date) -> int:
    return int(datetime.combine(day, time.min, tzinfo=timezone.utc).timestamp())


def format_day(day: date) -> str:
    return day.isoformat()


def parse_day(value: str) -> date:
    return normalize_day(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))


def default_date_range(today: date | datetime, days: int = DEFAULT_RANGE_DAYS) -> DateRange:
    """Last ``days`` days, ending yesterday."""
    if days < 1:
        raise ValueError("days must be positive.")
    current = normalize_day(today)
    return DateRange(start=current - timedelta(days=days), end=current - timedelta(days=1))


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
