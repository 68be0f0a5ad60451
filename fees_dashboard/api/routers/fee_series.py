from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from fees_dashboard.api.deps import (
    AssemblerFactory,
    get_assembler_factory,
    get_fee_session_registry,
    get_seed_fee_cache_use_case,
    get_today,
)
from fees_dashboard.api.schemas.fee_series import (
    CreateFeeSessionRequest,
    FeeSeriesPointResponse,
    FeeSeriesResponse,
)
from fees_dashboard.application.dto.fee_series import AssembleFeeSeriesInput, AssembleFeeSeriesOutput
from fees_dashboard.application.use_cases.seed_fee_cache import SeedFeeCacheUseCase
from fees_dashboard.domain.entities.fee_series import DateRange
from fees_dashboard.domain.exceptions import (
    FeeSeriesInputError,
    FeeSessionNotFoundError,
    InvalidRangeError,
)
from fees_dashboard.domain.services.date_range import default_date_range, parse_day
from fees_dashboard.domain.services.series_cache import SeriesCache
from fees_dashboard.infrastructure.sessions.fee_session_registry import FeeSession, FeeSessionRegistry
from fees_dashboard.shared.config import get_settings

router = APIRouter()
logger = logging.getLogger(__name__)


def parse_range_param(value: str) -> DateRange:
    """``2021-01-01,2021-03-31`` -> DateRange."""
    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 2 or not all(parts):
        raise FeeSeriesInputError("range must be '<start>,<end>'.")
    try:
        start, end = parse_day(parts[0]), parse_day(parts[1])
    except ValueError as exc:
        raise FeeSeriesInputError(f"range has an invalid date: {exc}") from exc
    return DateRange(start=start, end=end)


def smoothing_from_smooth(smooth: int | None) -> int:
    # smooth is the window length in days, smoothing the number of prior days
    if smooth is None:
        return 0
    if smooth < 1:
        raise FeeSeriesInputError("smooth must be at least 1.")
    return smooth - 1


def _to_response(session: FeeSession, output: AssembleFeeSeriesOutput) -> FeeSeriesResponse:
    return FeeSeriesResponse(
        session_id=session.session_id,
        protocol_id=session.protocol_id,
        loading=output.loading,
        data=[
            FeeSeriesPointResponse(timestamp=row.timestamp, primary=row.primary, secondary=row.secondary)
            for row in output.data
        ],
    )


def _get_session(registry: FeeSessionRegistry, session_id: str) -> FeeSession:
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=404,
            detail=str(FeeSessionNotFoundError(f"Fee session '{session_id}' not found.")),
        )
    return session


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/v1/fee-sessions", response_model=FeeSeriesResponse)
async def create_fee_session(
    req: CreateFeeSessionRequest,
    today: date = Depends(get_today),
    seed_use_case: SeedFeeCacheUseCase = Depends(get_seed_fee_cache_use_case),
    assembler_factory: AssemblerFactory = Depends(get_assembler_factory),
    registry: FeeSessionRegistry = Depends(get_fee_session_registry),
):
    protocol_id = req.protocol_id.strip()
    try:
        assembler = assembler_factory(
            SeriesCache(),
            default_date_range(today, days=get_settings().fee_series_seed_days),
        )
        seeded = await seed_use_case.execute(cache=assembler.cache, metric_id=protocol_id, today=today)
        session = registry.create(protocol_id=protocol_id, assembler=assembler)
        output = await assembler.execute(
            AssembleFeeSeriesInput(date_range=seeded.date_range, primary_id=protocol_id)
        )
    except FeeSeriesInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "fee_series_router: session_created session=%s protocol=%s seeded=%s",
        session.session_id,
        protocol_id,
        seeded.inserted,
    )
    return _to_response(session, output)


@router.get("/v1/fee-sessions/{session_id}", response_model=FeeSeriesResponse)
def get_fee_session(
    session_id: str,
    registry: FeeSessionRegistry = Depends(get_fee_session_registry),
):
    session = _get_session(registry, session_id)
    return _to_response(session, session.assembler.state)


@router.get("/v1/fee-sessions/{session_id}/series", response_model=FeeSeriesResponse)
async def get_fee_series(
    session_id: str,
    range_: str | None = Query(default=None, alias="range"),
    compare: str | None = Query(default=None),
    smooth: int | None = Query(default=None),
    today: date = Depends(get_today),
    registry: FeeSessionRegistry = Depends(get_fee_session_registry),
):
    session = _get_session(registry, session_id)
    try:
        if range_:
            date_range = parse_range_param(range_)
        elif session.assembler.last_applied_input is not None:
            date_range = session.assembler.last_applied_input.date_range
        else:
            date_range = default_date_range(today, days=get_settings().fee_series_seed_days)
        output = await session.assembler.execute(
            AssembleFeeSeriesInput(
                date_range=date_range,
                primary_id=session.protocol_id,
                secondary_id=compare.strip() if compare and compare.strip() else None,
                smoothing=smoothing_from_smooth(smooth),
            )
        )
    except (InvalidRangeError, FeeSeriesInputError) as exc:
        logger.warning(
            "fee_series_router: invalid_input session=%s range=%s compare=%s smooth=%s detail=%s",
            session_id,
            range_,
            compare,
            smooth,
            exc,
        )
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _to_response(session, output)
