"""Win/loss ledger endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from config.settings import settings
from lastdigit.api.dependencies import get_service
from lastdigit.scheduler import DigitPredictorService
from lastdigit.tracker.stats_store import StatsLedger


router = APIRouter(
    prefix="/api/stats",
    tags=["stats"],
)


class SettlementItem(BaseModel):
    timestamp: int
    time: str
    predicted_digit: int
    actual_digit: int
    win: bool
    result: str


class StatsResponse(BaseModel):
    """Ledger summary with the most recent settlements, newest first."""

    wins: int = Field(..., description="Settled predictions that matched")
    total: int = Field(..., description="Settled predictions")
    win_rate_pct: int = Field(..., description="Win rate rounded to a whole percent")
    recent: List[SettlementItem] = Field(default_factory=list)


def _to_response(ledger: StatsLedger, limit: int) -> StatsResponse:
    return StatsResponse(
        wins=ledger.wins,
        total=ledger.total,
        win_rate_pct=ledger.win_rate_pct,
        recent=[SettlementItem(**r.to_display()) for r in ledger.recent(limit)],
    )


@router.get("", response_model=StatsResponse)
@router.get("/", response_model=StatsResponse)
async def get_stats(
    limit: int = Query(settings.RECENT_SETTLEMENTS, ge=0, le=100),
    service: DigitPredictorService = Depends(get_service),
) -> StatsResponse:
    return _to_response(service.tracker.ledger, limit)


@router.post("/reset", response_model=StatsResponse)
async def reset_stats(
    service: DigitPredictorService = Depends(get_service),
) -> StatsResponse:
    """Zero the persisted ledger."""
    return _to_response(service.reset_stats(), 0)
