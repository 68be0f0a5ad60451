from __future__ import annotations

from datetime import date
from typing import Protocol

from fees_dashboard.domain.entities.fee_series import DailyFeeRecord


class DailyFeesPort(Protocol):
    async def fetch_daily(self, requests: dict[str, list[date]]) -> dict[str, list[DailyFeeRecord]]:
        """Fetch the requested days per metric id.

        Metrics or days the source has no data for are simply absent from
        the result. Raises ``DailyFeesFetchError`` when the whole request
        fails.
        """
        ...
