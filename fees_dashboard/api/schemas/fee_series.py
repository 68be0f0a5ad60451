from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class CreateFeeSessionRequest(BaseModel):
    protocol_id: str = Field(min_length=1)


class FeeSeriesPointResponse(BaseModel):
    timestamp: int
    primary: Decimal | None
    secondary: Decimal | None


class FeeSeriesResponse(BaseModel):
    session_id: str
    protocol_id: str
    loading: bool
    data: list[FeeSeriesPointResponse]
