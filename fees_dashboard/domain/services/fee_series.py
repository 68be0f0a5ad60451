from __future__ import annotations

from decimal import Decimal

from fees_dashboard.domain.entities.fee_series import DateRange, FeeSeriesPoint
from fees_dashboard.domain.services.date_range import day_timestamp
from fees_dashboard.domain.services.series_cache import SeriesCache
from fees_dashboard.domain.services.smoothing import compute_smoothed_fee, window_is_complete


NOT_REQUESTED = Decimal("0")


def _value_or_none(cache: SeriesCache, metric_id: str, day, smoothing: int) -> Decimal | None:
    if not window_is_complete(cache, metric_id, day, smoothing):
        return None
    return compute_smoothed_fee(cache, metric_id, day, smoothing)


def build_series_points(
    *,
    cache: SeriesCache,
    date_range: DateRange,
    primary_id: str,
    secondary_id: str | None,
    smoothing: int,
) -> list[FeeSeriesPoint]:
    """One point per day of the range; ``None`` where the window is incomplete.

    ``secondary`` is zero, not ``None``, when no secondary metric is requested.
    """
    points: list[FeeSeriesPoint] = []
    for day in date_range:
        primary = _value_or_none(cache, primary_id, day, smoothing)
        if secondary_id:
            secondary = _value_or_none(cache, secondary_id, day, smoothing)
        else:
            secondary = NOT_REQUESTED
        points.append(FeeSeriesPoint(timestamp=day_timestamp(day), primary=primary, secondary=secondary))
    return points


def empty_series(date_range: DateRange) -> list[FeeSeriesPoint]:
    return [
        FeeSeriesPoint(timestamp=day_timestamp(day), primary=None, secondary=None)
        for day in date_range
    ]
