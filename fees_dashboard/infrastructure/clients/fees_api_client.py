from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from fees_dashboard.application.ports.daily_fees_port import DailyFeesPort
from fees_dashboard.domain.entities.fee_series import DailyFeeRecord
from fees_dashboard.domain.exceptions import DailyFeesFetchError
from fees_dashboard.domain.services.date_range import format_day, parse_day


logger = logging.getLogger(__name__)


FEES_BY_DAY_PATH = "/api/v1/feesByDay"


@dataclass(frozen=True)
class HttpDailyFeesClientSettings:
    api_base: str
    timeout_seconds: float
    max_retries: int


class HttpDailyFeesClient(DailyFeesPort):
    """Client for the ``feesByDay`` endpoint.

    One request carries every metric: ``?uniswap=2021-01-01,2021-01-02&sushi=2021-01-02``.
    """

    def __init__(self, settings: HttpDailyFeesClientSettings):
        self._settings = settings

    async def fetch_daily(self, requests: dict[str, list[date]]) -> dict[str, list[DailyFeeRecord]]:
        params = self._build_query(requests)
        if not params:
            return {}

        payload = await self._get_json(params=params)
        if not payload.get("success"):
            raise DailyFeesFetchError(
                f"feesByDay answered without success: {payload.get('error') or payload.get('message') or 'unknown error'}"
            )

        entries = payload.get("data") or []
        if not isinstance(entries, list):
            raise DailyFeesFetchError("feesByDay data is not a list.")

        result: dict[str, list[DailyFeeRecord]] = {}
        skipped = 0
        for entry in entries:
            if not isinstance(entry, dict):
                raise DailyFeesFetchError(f"feesByDay entry is not an object: {entry!r}")
            metric_id = entry.get("id")
            if not metric_id:
                continue
            rows = entry.get("data") or []
            if not isinstance(rows, list):
                raise DailyFeesFetchError(f"feesByDay rows for '{metric_id}' are not a list.")
            records = result.setdefault(str(metric_id), [])
            for row in rows:
                record = _parse_record(row)
                if record is None:
                    skipped += 1
                    continue
                records.append(record)

        logger.info(
            "fees_api_client: fetched_daily metrics=%s requested_days=%s received=%s skipped=%s",
            len(requests),
            sum(len(days) for days in requests.values()),
            sum(len(records) for records in result.values()),
            skipped,
        )
        return result

    @staticmethod
    def _build_query(requests: dict[str, list[date]]) -> list[tuple[str, str]]:
        return [
            (metric_id, ",".join(format_day(day) for day in days))
            for metric_id, days in requests.items()
            if days
        ]

    async def _get_json(self, *, params: list[tuple[str, str]]) -> dict:
        attempts = max(1, self._settings.max_retries)
        delay = 0.25
        last_exc: Exception | None = None
        url = f"{self._settings.api_base.rstrip('/')}{FEES_BY_DAY_PATH}"

        for attempt in range(1, attempts + 1):
            try:
                async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
                    response = await client.get(url, params=params)
                    response.raise_for_status()
                    payload = response.json()
                if not isinstance(payload, dict):
                    raise ValueError("feesByDay payload is not an object.")
                return payload
            except (httpx.HTTPError, ValueError) as exc:
                last_exc = exc
                if attempt == attempts:
                    break
                logger.warning(
                    "fees_api_client: fees_by_day_retry attempt=%s/%s error=%s",
                    attempt,
                    attempts,
                    exc,
                )
                await asyncio.sleep(delay)
                delay *= 2

        raise DailyFeesFetchError(f"feesByDay request failed after retries: {last_exc}") from last_exc


def _parse_record(row: Any) -> DailyFeeRecord | None:
    if not isinstance(row, dict):
        return None
    raw_date = row.get("date")
    raw_fee = row.get("fee")
    if raw_date is None or raw_fee is None:
        return None
    try:
        day = parse_day(str(raw_date))
        fee = Decimal(str(raw_fee))
    except (ValueError, InvalidOperation):
        logger.warning("fees_api_client: invalid_row date=%s fee=%s", raw_date, raw_fee)
        return None
    if not fee.is_finite():
        return None
    extra = {key: value for key, value in row.items() if key not in ("date", "fee")}
    return DailyFeeRecord(day=day, fee=fee, extra=extra)
