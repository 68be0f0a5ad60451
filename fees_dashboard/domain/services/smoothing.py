from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from fees_dashboard.domain.exceptions import MissingDataError
from fees_dashboard.domain.services.series_cache import SeriesCache


def window_days(day: date, smoothing: int) -> list[date]:
    """Trailing window ``day, day-1, ..., day-smoothing``."""
    if smoothing < 0:
        raise ValueError("smoothing must be zero or positive.")
    return [day - timedelta(days=offset) for offset in range(smoothing + 1)]


def window_is_complete(cache: SeriesCache, metric_id: str, day: date, smoothing: int) -> bool:
    return all(cache.has(metric_id, window_day) for window_day in window_days(day, smoothing))


def compute_smoothed_fee(cache: SeriesCache, metric_id: str, day: date, smoothing: int) -> Decimal:
    days = window_days(day, smoothing)
    total = Decimal("0")
    missing: list[date] = []
    for window_day in days:
        record = cache.get(metric_id, window_day)
        if record is None:
            missing.append(window_day)
            continue
        total += record.fee
    if missing:
        raise MissingDataError(
            f"Smoothing window for {metric_id} on {day.isoformat()} is missing {len(missing)} day(s).",
            metric_id=metric_id,
            missing_days=missing,
        )
    if smoothing == 0:
        return total
    return total / Decimal(len(days))
