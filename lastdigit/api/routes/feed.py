"""Feed control endpoints: symbol catalog, active symbol, live mode."""

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from lastdigit.api.dependencies import get_service
from lastdigit.scheduler import DigitPredictorService
from lastdigit.stream.symbols import list_symbols, symbol_label
from lastdigit.utils.logger import get_api_logger

logger = get_api_logger()


router = APIRouter(
    prefix="/api",
    tags=["feed"],
)


class SymbolRequest(BaseModel):
    symbol: str = Field(..., description="Symbol identifier, e.g. R_75")


class LiveRequest(BaseModel):
    enabled: bool = Field(..., description="Keep the feed connected and auto-reconnect")


class FeedStatus(BaseModel):
    symbol: str
    symbol_label: str
    live: bool
    connection_state: str


def _feed_status(service: DigitPredictorService) -> FeedStatus:
    return FeedStatus(
        symbol=service.client.symbol,
        symbol_label=symbol_label(service.client.symbol),
        live=service.client.live,
        connection_state=service.client.state.value,
    )


@router.get("/symbols", response_model=List[Dict[str, str]])
async def get_symbols() -> List[Dict[str, str]]:
    return list_symbols()


@router.get("/symbols/active", response_model=FeedStatus)
async def get_active_symbol(
    service: DigitPredictorService = Depends(get_service),
) -> FeedStatus:
    return _feed_status(service)


@router.post("/symbols/active", response_model=FeedStatus)
async def set_active_symbol(
    request: SymbolRequest,
    service: DigitPredictorService = Depends(get_service),
) -> FeedStatus:
    """Switch the subscription; tick history is cleared."""
    try:
        service.switch_symbol(request.symbol)
    except ValueError as e:
        logger.warning(f"Rejected symbol switch: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _feed_status(service)


@router.post("/live", response_model=FeedStatus)
async def set_live(
    request: LiveRequest,
    service: DigitPredictorService = Depends(get_service),
) -> FeedStatus:
    service.set_live(request.enabled)
    return _feed_status(service)
