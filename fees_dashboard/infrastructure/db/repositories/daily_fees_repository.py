from __future__ import annotations

import asyncio
import logging
from datetime import date

from sqlalchemy import bindparam, text
from sqlalchemy.exc import SQLAlchemyError

from fees_dashboard.application.ports.daily_fees_port import DailyFeesPort
from fees_dashboard.domain.entities.fee_series import DailyFeeRecord
from fees_dashboard.domain.exceptions import DailyFeesFetchError
from fees_dashboard.infrastructure.db.mappers.daily_fee_mapper import map_row_to_daily_fee_record


logger = logging.getLogger(__name__)


class SqlDailyFeesRepository(DailyFeesPort):
    def __init__(self, engine):
        self._engine = engine

    async def fetch_daily(self, requests: dict[str, list[date]]) -> dict[str, list[DailyFeeRecord]]:
        if not any(requests.values()):
            return {}
        try:
            return await asyncio.to_thread(self._fetch_daily_sync, requests)
        except SQLAlchemyError as exc:
            raise DailyFeesFetchError(f"Daily fees query failed: {exc}") from exc

    def _fetch_daily_sync(self, requests: dict[str, list[date]]) -> dict[str, list[DailyFeeRecord]]:
        sql = text(
            """
            SELECT
              f.protocol_id,
              f.date,
              f.fee::numeric AS fee,
              f.revenue::numeric AS revenue
            FROM public.protocol_daily_fees f
            WHERE f.protocol_id = :protocol_id
              AND f.date IN :days
            ORDER BY f.date
            """
        ).bindparams(bindparam("days", expanding=True))

        result: dict[str, list[DailyFeeRecord]] = {}
        with self._engine.connect() as conn:
            for protocol_id, days in requests.items():
                if not days:
                    continue
                rows = conn.execute(sql, {"protocol_id": protocol_id, "days": list(days)}).mappings().all()
                records = [record for record in map(map_row_to_daily_fee_record, rows) if record is not None]
                result[protocol_id] = records
                logger.info(
                    "daily_fees_repository: fetched protocol=%s requested=%s found=%s",
                    protocol_id,
                    len(days),
                    len(records),
                )
        return result
