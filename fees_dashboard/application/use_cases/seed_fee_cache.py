from __future__ import annotations

import logging
from datetime import date

from fees_dashboard.application.dto.fee_series import SeedFeeCacheOutput
from fees_dashboard.application.ports.daily_fees_port import DailyFeesPort
from fees_dashboard.domain.exceptions import DailyFeesFetchError, FeeSeriesInputError
from fees_dashboard.domain.services.date_range import default_date_range
from fees_dashboard.domain.services.series_cache import SeriesCache


logger = logging.getLogger(__name__)


class SeedFeeCacheUseCase:
    """Loads the initial snapshot of a session: the recent history of one metric."""

    def __init__(self, *, daily_fees_port: DailyFeesPort, seed_days: int = 90):
        if seed_days < 1:
            raise ValueError("seed_days must be positive.")
        self._daily_fees_port = daily_fees_port
        self._seed_days = seed_days

    async def execute(self, *, cache: SeriesCache, metric_id: str, today: date) -> SeedFeeCacheOutput:
        if not metric_id or not metric_id.strip():
            raise FeeSeriesInputError("metric_id is required.")

        date_range = default_date_range(today, days=self._seed_days)
        try:
            response = await self._daily_fees_port.fetch_daily({metric_id: list(date_range)})
        except DailyFeesFetchError as exc:
            logger.warning(
                "seed_fee_cache: fetch_failed metric=%s start=%s end=%s error=%s",
                metric_id,
                date_range.start,
                date_range.end,
                exc,
            )
            return SeedFeeCacheOutput(metric_id=metric_id, date_range=date_range, inserted=0)

        inserted = cache.merge_records(metric_id, response.get(metric_id, []))
        logger.info(
            "seed_fee_cache: seeded metric=%s start=%s end=%s inserted=%s",
            metric_id,
            date_range.start,
            date_range.end,
            inserted,
        )
        return SeedFeeCacheOutput(metric_id=metric_id, date_range=date_range, inserted=inserted)
