from __future__ import annotations

from collections.abc import Callable
from datetime import date
from functools import lru_cache

from fastapi import Depends, HTTPException

from fees_dashboard.application.ports.daily_fees_port import DailyFeesPort
from fees_dashboard.application.use_cases.assemble_fee_series import AssembleFeeSeriesUseCase
from fees_dashboard.application.use_cases.seed_fee_cache import SeedFeeCacheUseCase
from fees_dashboard.domain.entities.fee_series import DateRange
from fees_dashboard.domain.services.date_range import utc_today
from fees_dashboard.domain.services.series_cache import SeriesCache
from fees_dashboard.infrastructure.clients.fees_api_client import (
    HttpDailyFeesClient,
    HttpDailyFeesClientSettings,
)
from fees_dashboard.infrastructure.db.engine import get_engine
from fees_dashboard.infrastructure.db.repositories.daily_fees_repository import SqlDailyFeesRepository
from fees_dashboard.infrastructure.sessions.fee_session_registry import FeeSessionRegistry
from fees_dashboard.shared.config import get_settings


AssemblerFactory = Callable[[SeriesCache, DateRange], AssembleFeeSeriesUseCase]


@lru_cache(maxsize=1)
def get_daily_fees_port() -> DailyFeesPort:
    settings = get_settings()
    if settings.fees_source == "sql":
        if not settings.postgres_dsn:
            raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
        return SqlDailyFeesRepository(get_engine(settings.postgres_dsn))
    if settings.fees_source != "api":
        raise HTTPException(status_code=500, detail=f"Unsupported FEES_SOURCE '{settings.fees_source}'.")
    return HttpDailyFeesClient(
        HttpDailyFeesClientSettings(
            api_base=settings.fees_api_base,
            timeout_seconds=settings.fees_api_timeout_seconds,
            max_retries=settings.fees_api_max_retries,
        )
    )


@lru_cache(maxsize=1)
def get_fee_session_registry() -> FeeSessionRegistry:
    return FeeSessionRegistry(max_entries=get_settings().fee_session_max_entries)


def get_today() -> date:
    return utc_today()


def get_seed_fee_cache_use_case(
    daily_fees_port: DailyFeesPort = Depends(get_daily_fees_port),
) -> SeedFeeCacheUseCase:
    return SeedFeeCacheUseCase(
        daily_fees_port=daily_fees_port,
        seed_days=get_settings().fee_series_seed_days,
    )


def get_assembler_factory(
    daily_fees_port: DailyFeesPort = Depends(get_daily_fees_port),
) -> AssemblerFactory:
    settings = get_settings()

    def _factory(cache: SeriesCache, initial_range: DateRange) -> AssembleFeeSeriesUseCase:
        return AssembleFeeSeriesUseCase(
            daily_fees_port=daily_fees_port,
            cache=cache,
            initial_range=initial_range,
            max_smoothing=settings.fee_series_max_smoothing,
            max_range_days=settings.fee_series_max_range_days,
        )

    return _factory
