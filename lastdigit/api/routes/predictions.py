"""Prediction and snapshot endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lastdigit.api.dependencies import get_service
from lastdigit.api.websocket import sanitize_for_json
from lastdigit.scheduler import DigitPredictorService


router = APIRouter(
    prefix="/api",
    tags=["predictions"],
)


class PredictionResponse(BaseModel):
    """The pending prediction, if any."""

    pending: bool = Field(..., description="Whether a prediction awaits settlement")
    digit: Optional[int] = Field(None, description="Predicted last digit")
    confidence: Optional[int] = Field(None, description="Confidence 0-100")
    issued_at: Optional[int] = Field(None, description="Issue time in epoch ms")
    distribution: List[float] = Field(default_factory=list, description="Probability of each digit 0-9")
    countdown_sec: Optional[int] = Field(None, description="Seconds until the next prediction cycle")
    insufficient_data: Optional[Dict[str, Any]] = Field(
        None, description="Set when the last cycle lacked history"
    )


@router.get("/snapshot", response_model=Dict[str, Any])
async def get_snapshot(
    service: DigitPredictorService = Depends(get_service),
) -> Dict[str, Any]:
    """Full renderer snapshot: ticks, digit frequency, prediction, stats, indicators."""
    return sanitize_for_json(service.snapshot())


@router.get("/prediction", response_model=PredictionResponse)
async def get_prediction(
    service: DigitPredictorService = Depends(get_service),
) -> PredictionResponse:
    snapshot = service.snapshot()
    pending = snapshot["current_prediction"]
    if pending is None:
        return PredictionResponse(
            pending=False,
            countdown_sec=snapshot["countdown_sec"],
            insufficient_data=snapshot["insufficient_data"],
        )
    return PredictionResponse(
        pending=True,
        digit=pending["digit"],
        confidence=pending["confidence"],
        issued_at=pending["issued_at"],
        distribution=pending["distribution"],
        countdown_sec=snapshot["countdown_sec"],
    )
