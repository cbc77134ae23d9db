"""API routes for the last-digit predictor."""

from .health import router as health_router
from .predictions import router as predictions_router
from .stats import router as stats_router
from .feed import router as feed_router

__all__ = [
    "health_router",
    "predictions_router",
    "stats_router",
    "feed_router",
]
