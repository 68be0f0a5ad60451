from __future__ import annotations

from collections.abc import Mapping
from datetime import date

from fees_dashboard.domain.entities.fee_series import DateRange
from fees_dashboard.domain.services.series_cache import SeriesCache


def find_missing(cache: SeriesCache, metric_id: str, date_range: DateRange) -> list[date]:
    return [day for day in date_range if not cache.has(metric_id, day)]


def build_fetch_request(missing_by_metric: Mapping[str, list[date]]) -> dict[str, list[date]]:
    """Keep only the metrics that actually have gaps."""
    return {metric_id: list(days) for metric_id, days in missing_by_metric.items() if days}
