from __future__ import annotations

import logging
from collections.abc import Callable

from fees_dashboard.application.dto.fee_series import (
    AssembleFeeSeriesInput,
    AssembleFeeSeriesOutput,
    FeeSeriesPointOutput,
)
from fees_dashboard.application.ports.daily_fees_port import DailyFeesPort
from fees_dashboard.domain.entities.fee_series import DailyFeeRecord, DateRange, FeeSeriesPoint
from fees_dashboard.domain.exceptions import DailyFeesFetchError, FeeSeriesInputError
from fees_dashboard.domain.services.fee_series import build_series_points, empty_series
from fees_dashboard.domain.services.gap_detector import build_fetch_request, find_missing
from fees_dashboard.domain.services.series_cache import SeriesCache


logger = logging.getLogger(__name__)

StateListener = Callable[[AssembleFeeSeriesOutput], None]


def _to_output(points: list[FeeSeriesPoint]) -> list[FeeSeriesPointOutput]:
    return [
        FeeSeriesPointOutput(timestamp=point.timestamp, primary=point.primary, secondary=point.secondary)
        for point in points
    ]


class AssembleFeeSeriesUseCase:
    """Keeps one dashboard chart in sync with a session's fee cache.

    Every ``execute`` call is a fresh request. Only the fetch of missing days
    suspends; the published ``state`` is only replaced by the execution whose
    input is still the current one when its fetch resolves.
    """

    def __init__(
        self,
        *,
        daily_fees_port: DailyFeesPort,
        cache: SeriesCache,
        initial_range: DateRange | None = None,
        max_smoothing: int | None = None,
        max_range_days: int | None = None,
        on_change: StateListener | None = None,
    ):
        self._daily_fees_port = daily_fees_port
        self._cache = cache
        self._max_smoothing = max_smoothing
        self._max_range_days = max_range_days
        self._on_change = on_change
        initial_data = _to_output(empty_series(initial_range)) if initial_range is not None else []
        self._state = AssembleFeeSeriesOutput(loading=False, data=initial_data)
        self._current_input: AssembleFeeSeriesInput | None = None
        self._last_applied_input: AssembleFeeSeriesInput | None = None

    @property
    def state(self) -> AssembleFeeSeriesOutput:
        return self._state

    @property
    def cache(self) -> SeriesCache:
        return self._cache

    @property
    def current_input(self) -> AssembleFeeSeriesInput | None:
        return self._current_input

    @property
    def last_applied_input(self) -> AssembleFeeSeriesInput | None:
        return self._last_applied_input

    async def execute(self, command: AssembleFeeSeriesInput) -> AssembleFeeSeriesOutput:
        self._validate(command)
        self._current_input = command

        fetch_range = command.date_range.widen_back(command.smoothing)
        missing = {command.primary_id: find_missing(self._cache, command.primary_id, fetch_range)}
        if command.secondary_id:
            missing[command.secondary_id] = find_missing(self._cache, command.secondary_id, fetch_range)
        request = build_fetch_request(missing)

        if not request:
            return self._apply(command)

        self._publish(AssembleFeeSeriesOutput(loading=True, data=self._state.data))
        try:
            response = await self._daily_fees_port.fetch_daily(request)
        except DailyFeesFetchError as exc:
            logger.warning(
                "assemble_fee_series: fetch_failed primary=%s secondary=%s requested_days=%s error=%s",
                command.primary_id,
                command.secondary_id,
                sum(len(days) for days in request.values()),
                exc,
            )
        else:
            self._merge(response)

        if command != self._current_input:
            logger.info(
                "assemble_fee_series: stale_result_discarded primary=%s secondary=%s smoothing=%s",
                command.primary_id,
                command.secondary_id,
                command.smoothing,
            )
            return self._state
        return self._apply(command)

    def _validate(self, command: AssembleFeeSeriesInput) -> None:
        if not command.primary_id or not command.primary_id.strip():
            raise FeeSeriesInputError("primary_id is required.")
        if command.smoothing < 0:
            raise FeeSeriesInputError("smoothing must be zero or positive.")
        if self._max_smoothing is not None and command.smoothing > self._max_smoothing:
            raise FeeSeriesInputError(f"smoothing must be at most {self._max_smoothing}.")
        if self._max_range_days is not None and len(command.date_range) > self._max_range_days:
            raise FeeSeriesInputError(f"date range must span at most {self._max_range_days} days.")

    def _merge(self, response: dict[str, list[DailyFeeRecord]]) -> None:
        for metric_id, records in response.items():
            inserted = self._cache.merge_records(metric_id, records)
            logger.info(
                "assemble_fee_series: merged metric=%s received=%s inserted=%s",
                metric_id,
                len(records),
                inserted,
            )

    def _apply(self, command: AssembleFeeSeriesInput) -> AssembleFeeSeriesOutput:
        points = build_series_points(
            cache=self._cache,
            date_range=command.date_range,
            primary_id=command.primary_id,
            secondary_id=command.secondary_id,
            smoothing=command.smoothing,
        )
        self._last_applied_input = command
        self._publish(AssembleFeeSeriesOutput(loading=False, data=_to_output(points)))
        return self._state

    def _publish(self, state: AssembleFeeSeriesOutput) -> None:
        self._state = state
        if self._on_change is not None:
            self._on_change(state)
