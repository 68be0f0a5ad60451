from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from fees_dashboard.domain.exceptions import InvalidRangeError


ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class DateRange:
    """Inclusive interval of UTC calendar days."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidRangeError(
                f"start ({self.start.isoformat()}) must not be after end ({self.end.isoformat()})."
            )

    def __iter__(self) -> Iterator[date]:
        day = self.start
        while day <= self.end:
            yield day
            day += ONE_DAY

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def widen_back(self, days: int) -> DateRange:
        if days < 0:
            raise ValueError("days must be zero or positive.")
        if days == 0:
            return self
        return DateRange(start=self.start - timedelta(days=days), end=self.end)


@dataclass(frozen=True)
class DailyFeeRecord:
    day: date
    fee: Decimal
    extra: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class FeeSeriesPoint:
    timestamp: int
    primary: Decimal | None
    secondary: Decimal | None
