from __future__ import annotations

import asyncio
from datetime import date, timedelta
from decimal import Decimal
import unittest

from fees_dashboard.application.dto.fee_series import AssembleFeeSeriesInput, AssembleFeeSeriesOutput
from fees_dashboard.application.use_cases.assemble_fee_series import AssembleFeeSeriesUseCase
from fees_dashboard.domain.entities.fee_series import DailyFeeRecord, DateRange
from fees_dashboard.domain.exceptions import DailyFeesFetchError, FeeSeriesInputError, InvalidRangeError
from fees_dashboard.domain.services.date_range import day_timestamp
from fees_dashboard.domain.services.series_cache import SeriesCache


D1 = date(2021, 1, 1)
D2 = date(2021, 1, 2)
D3 = date(2021, 1, 3)


class FakeDailyFeesPort:
    """Answers every requested day from ``fees`` (metric -> day -> fee)."""

    def __init__(self, fees: dict[str, dict[date, str]] | None = None, *, fail: bool = False):
        self.fees = fees or {}
        self.fail = fail
        self.calls: list[dict[str, list[date]]] = []

    async def fetch_daily(self, requests: dict[str, list[date]]) -> dict[str, list[DailyFeeRecord]]:
        self.calls.append({metric_id: list(days) for metric_id, days in requests.items()})
        if self.fail:
            raise DailyFeesFetchError("upstream unavailable")
        result: dict[str, list[DailyFeeRecord]] = {}
        for metric_id, days in requests.items():
            known = self.fees.get(metric_id, {})
            result[metric_id] = [
                DailyFeeRecord(day=day, fee=Decimal(known[day])) for day in days if day in known
            ]
        return result


class BlockingDailyFeesPort(FakeDailyFeesPort):
    """Holds each fetch until its release event is set."""

    def __init__(self, fees: dict[str, dict[date, str]]):
        super().__init__(fees)
        self.releases: list[asyncio.Event] = []
        self.started = asyncio.Event()

    async def fetch_daily(self, requests):
        release = asyncio.Event()
        self.releases.append(release)
        self.started.set()
        await release.wait()
        return await super().fetch_daily(requests)


def _fees(metric_start: date, values: list[str]) -> dict[date, str]:
    return {metric_start + timedelta(days=idx): value for idx, value in enumerate(values)}


class AssembleFeeSeriesUseCaseTests(unittest.IsolatedAsyncioTestCase):
    def _use_case(self, port, cache: SeriesCache | None = None, **kwargs):
        self.states: list[AssembleFeeSeriesOutput] = []
        return AssembleFeeSeriesUseCase(
            daily_fees_port=port,
            cache=cache if cache is not None else SeriesCache(),
            on_change=self.states.append,
            **kwargs,
        )

    def _input(self, **overrides) -> AssembleFeeSeriesInput:
        payload = {
            "date_range": DateRange(start=D1, end=D3),
            "primary_id": "uniswap",
            "secondary_id": None,
            "smoothing": 0,
        }
        payload.update(overrides)
        return AssembleFeeSeriesInput(**payload)

    async def test_partial_fetch_leaves_missing_day_null(self):
        port = FakeDailyFeesPort({"uniswap": {D1: "5", D2: "5"}})
        use_case = self._use_case(port)

        result = await use_case.execute(self._input())

        self.assertEqual(port.calls, [{"uniswap": [D1, D2, D3]}])
        self.assertFalse(result.loading)
        self.assertEqual(
            [(row.timestamp, row.primary, row.secondary) for row in result.data],
            [
                (day_timestamp(D1), Decimal("5"), Decimal("0")),
                (day_timestamp(D2), Decimal("5"), Decimal("0")),
                (day_timestamp(D3), None, Decimal("0")),
            ],
        )
        self.assertTrue(self.states[0].loading)
        self.assertFalse(self.states[-1].loading)

    async def test_fully_cached_request_skips_fetch_and_loading(self):
        cache = SeriesCache()
        cache.merge_records("uniswap", [DailyFeeRecord(day=day, fee=Decimal("5")) for day in (D1, D2, D3)])
        port = FakeDailyFeesPort()
        use_case = self._use_case(port, cache)

        first = await use_case.execute(self._input())
        second = await use_case.execute(self._input())

        self.assertEqual(port.calls, [])
        self.assertEqual(first, second)
        self.assertTrue(all(not state.loading for state in self.states))

    async def test_fetch_range_is_widened_by_smoothing(self):
        port = FakeDailyFeesPort({"uniswap": _fees(date(2020, 12, 30), ["10", "20", "30", "40", "50"])})
        use_case = self._use_case(port)

        result = await use_case.execute(self._input(smoothing=2))

        self.assertEqual(
            port.calls,
            [{"uniswap": [date(2020, 12, 30), date(2020, 12, 31), D1, D2, D3]}],
        )
        self.assertEqual(
            [row.primary for row in result.data],
            [Decimal("20"), Decimal("30"), Decimal("40")],
        )

    async def test_only_gaps_are_requested_and_complete_metrics_are_omitted(self):
        cache = SeriesCache()
        cache.merge_records("uniswap", [DailyFeeRecord(day=day, fee=Decimal("1")) for day in (D1, D2, D3)])
        cache.merge_records("sushi", [DailyFeeRecord(day=D2, fee=Decimal("2"))])
        port = FakeDailyFeesPort({"sushi": {D1: "3", D3: "4"}})
        use_case = self._use_case(port, cache)

        result = await use_case.execute(self._input(secondary_id="sushi"))

        self.assertEqual(port.calls, [{"sushi": [D1, D3]}])
        self.assertEqual(
            [row.secondary for row in result.data],
            [Decimal("3"), Decimal("2"), Decimal("4")],
        )

    async def test_secondary_missing_day_is_null(self):
        port = FakeDailyFeesPort({"uniswap": _fees(D1, ["1", "1", "1"]), "sushi": {D2: "9"}})
        use_case = self._use_case(port)

        result = await use_case.execute(self._input(secondary_id="sushi"))

        self.assertEqual(port.calls, [{"uniswap": [D1, D2, D3], "sushi": [D1, D2, D3]}])
        self.assertEqual([row.secondary for row in result.data], [None, Decimal("9"), None])

    async def test_fetch_failure_degrades_to_nulls_and_keeps_cache(self):
        cache = SeriesCache()
        cache.merge_records("uniswap", [DailyFeeRecord(day=D1, fee=Decimal("7"))])
        port = FakeDailyFeesPort(fail=True)
        use_case = self._use_case(port, cache)

        with self.assertLogs("fees_dashboard.application.use_cases.assemble_fee_series", level="WARNING"):
            result = await use_case.execute(self._input())

        self.assertFalse(result.loading)
        self.assertEqual([row.primary for row in result.data], [Decimal("7"), None, None])
        self.assertEqual(cache.count("uniswap"), 1)
        self.assertEqual(len(port.calls), 1)

    async def test_loading_state_retains_previous_data(self):
        cache = SeriesCache()
        cache.merge_records("uniswap", [DailyFeeRecord(day=day, fee=Decimal("5")) for day in (D1, D2, D3)])
        port = FakeDailyFeesPort({"uniswap": {date(2020, 12, 31): "5"}})
        use_case = self._use_case(port, cache)
        shown = await use_case.execute(self._input())

        await use_case.execute(self._input(smoothing=1))

        loading_states = [state for state in self.states if state.loading]
        self.assertEqual(len(loading_states), 1)
        self.assertEqual(loading_states[0].data, shown.data)

    async def test_stale_fetch_does_not_overwrite_newer_output(self):
        port = BlockingDailyFeesPort({"uniswap": _fees(D1, ["1", "2", "3"]), "sushi": _fees(D1, ["4", "5", "6"])})
        use_case = self._use_case(port)

        stale = asyncio.create_task(use_case.execute(self._input(secondary_id="sushi")))
        await port.started.wait()
        current = asyncio.create_task(use_case.execute(self._input()))
        while len(port.releases) < 2:
            await asyncio.sleep(0)

        port.releases[1].set()
        current_result = await current
        port.releases[0].set()
        stale_result = await stale

        self.assertEqual(use_case.state, current_result)
        self.assertEqual(stale_result, current_result)
        self.assertEqual(use_case.last_applied_input, self._input())
        self.assertTrue(all(row.secondary == Decimal("0") for row in use_case.state.data))
        # stale records are still merged: they are absolute history
        self.assertEqual(use_case.cache.count("sushi"), 3)

    async def test_merging_same_response_twice_gives_identical_output(self):
        port = FakeDailyFeesPort({"uniswap": _fees(D1, ["1", "2", "3"])})
        use_case = self._use_case(port)
        first = await use_case.execute(self._input())
        response = await port.fetch_daily({"uniswap": [D1, D2, D3]})
        for metric_id, records in response.items():
            use_case.cache.merge_records(metric_id, records)

        second = await use_case.execute(self._input())

        self.assertEqual(first, second)

    async def test_initial_state_is_an_empty_series(self):
        use_case = self._use_case(FakeDailyFeesPort(), initial_range=DateRange(start=D1, end=D3))
        self.assertFalse(use_case.state.loading)
        self.assertEqual(len(use_case.state.data), 3)
        self.assertTrue(all(row.primary is None for row in use_case.state.data))

    async def test_invalid_input_raises(self):
        use_case = self._use_case(FakeDailyFeesPort(), max_smoothing=30, max_range_days=90)
        with self.assertRaises(FeeSeriesInputError):
            await use_case.execute(self._input(primary_id=" "))
        with self.assertRaises(FeeSeriesInputError):
            await use_case.execute(self._input(smoothing=-1))
        with self.assertRaises(FeeSeriesInputError):
            await use_case.execute(self._input(smoothing=31))
        with self.assertRaises(FeeSeriesInputError):
            await use_case.execute(self._input(date_range=DateRange(start=D1, end=date(2021, 12, 31))))
        with self.assertRaises(InvalidRangeError):
            self._input(date_range=DateRange(start=D3, end=D1))


if __name__ == "__main__":
    unittest.main()
