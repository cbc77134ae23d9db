"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from lastdigit import __version__
from lastdigit.api.dependencies import get_service
from lastdigit.scheduler import DigitPredictorService


router = APIRouter(
    prefix="/api/health",
    tags=["health"],
)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="Service status")
    timestamp: str = Field(..., description="Current timestamp")
    version: str = Field(default=__version__, description="API version")
    connection_state: str = Field(..., description="Feed connection state")
    service: Dict[str, Any] = Field(..., description="Predictor service status")


@router.get("", response_model=HealthResponse)
@router.get("/", response_model=HealthResponse)
async def health_check(
    service: DigitPredictorService = Depends(get_service),
) -> HealthResponse:
    """
    Health check endpoint.

    The service stays healthy while the feed reconnects; the connection
    state is reported separately.
    """
    status = service.get_status()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        connection_state=status["stream"]["state"],
        service=status,
    )


@router.get("/live", response_model=Dict[str, Any])
async def liveness_check() -> Dict[str, Any]:
    """Liveness probe; does not touch the predictor service."""
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
