from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from fees_dashboard.domain.entities.fee_series import DateRange


@dataclass(frozen=True)
class AssembleFeeSeriesInput:
    date_range: DateRange
    primary_id: str
    secondary_id: str | None = None
    smoothing: int = 0


@dataclass(frozen=True)
class FeeSeriesPointOutput:
    timestamp: int
    primary: Decimal | None
    secondary: Decimal | None


@dataclass(frozen=True)
class AssembleFeeSeriesOutput:
    loading: bool
    data: list[FeeSeriesPointOutput] = field(default_factory=list)


@dataclass(frozen=True)
class SeedFeeCacheOutput:
    metric_id: str
    date_range: DateRange
    inserted: int
