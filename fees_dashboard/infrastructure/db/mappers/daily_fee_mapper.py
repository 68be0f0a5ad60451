from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from fees_dashboard.domain.entities.fee_series import DailyFeeRecord
from fees_dashboard.domain.services.date_range import normalize_day, parse_day


KEY_COLUMNS = ("protocol_id", "date", "fee")


def _to_day(value: Any) -> date:
    if isinstance(value, (date, datetime)):
        return normalize_day(value)
    return parse_day(str(value))


def map_row_to_daily_fee_record(row: Mapping[str, Any]) -> DailyFeeRecord | None:
    if row.get("fee") is None or row.get("date") is None:
        return None
    return DailyFeeRecord(
        day=_to_day(row["date"]),
        fee=Decimal(str(row["fee"])),
        extra={
            key: float(value) if isinstance(value, Decimal) else value
            for key, value in row.items()
            if key not in KEY_COLUMNS
        },
    )
