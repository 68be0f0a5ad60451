from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


@dataclass(frozen=True)
class Settings:
    fees_source: str
    fees_api_base: str
    fees_api_timeout_seconds: float
    fees_api_max_retries: int
    postgres_dsn: str
    fee_series_seed_days: int
    fee_series_max_smoothing: int
    fee_series_max_range_days: int
    fee_session_max_entries: int


def get_settings() -> Settings:
    return Settings(
        fees_source=(_env("FEES_SOURCE", "api") or "api").strip().lower(),
        fees_api_base=_env("FEES_API_BASE", "https://cryptofees.info"),
        fees_api_timeout_seconds=float(_env("FEES_API_TIMEOUT_SECONDS", "10")),
        fees_api_max_retries=int(_env("FEES_API_MAX_RETRIES", "3")),
        postgres_dsn=_env("POSTGRES_DSN", ""),
        fee_series_seed_days=int(_env("FEE_SERIES_SEED_DAYS", "90")),
        fee_series_max_smoothing=int(_env("FEE_SERIES_MAX_SMOOTHING", "90")),
        fee_series_max_range_days=int(_env("FEE_SERIES_MAX_RANGE_DAYS", "365")),
        fee_session_max_entries=int(_env("FEE_SESSION_MAX_ENTRIES", "256")),
    )
