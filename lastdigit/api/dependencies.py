"""Dependency injection for FastAPI endpoints."""

from functools import lru_cache
from typing import Optional

from fastapi import HTTPException, status

from lastdigit.scheduler import DigitPredictorService
from lastdigit.tracker.stats_store import StatsStore
from lastdigit.utils.database import SQLiteKeyValueBackend
from config.settings import settings
from lastdigit.utils.logger import get_api_logger

logger = get_api_logger()


# Global instances (initialized on startup)
_service: Optional[DigitPredictorService] = None
_backend: Optional[SQLiteKeyValueBackend] = None


def init_dependencies() -> DigitPredictorService:
    """
    Initialize global dependencies.

    This should be called during application startup.
    """
    global _service, _backend

    try:
        logger.info("Initializing API dependencies...")

        _backend = SQLiteKeyValueBackend()
        _service = DigitPredictorService(store=StatsStore(_backend))

        logger.info("All API dependencies initialized successfully")
        return _service

    except Exception as e:
        logger.error(f"Failed to initialize dependencies: {e}")
        raise


def shutdown_dependencies() -> None:
    """
    Cleanup dependencies on application shutdown.
    """
    global _service, _backend

    logger.info("Shutting down API dependencies...")

    if _backend is not None:
        _backend.dispose()

    # Clear global references
    _service = None
    _backend = None

    logger.info("API dependencies shutdown complete")


def get_service() -> DigitPredictorService:
    """
    Get the DigitPredictorService instance.

    Raises:
        HTTPException: If the service is not initialized
    """
    if _service is None:
        logger.error("DigitPredictorService not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Predictor service not available"
        )
    return _service


@lru_cache()
def get_settings():
    """
    Get application settings (cached).

    Returns:
        Settings instance
    """
    return settings
