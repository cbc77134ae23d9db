"""FastAPI application for the last-digit predictor."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from lastdigit import __version__
from lastdigit.api.routes import (
    health_router,
    predictions_router,
    stats_router,
    feed_router,
)
from lastdigit.api.websocket import handle_websocket_connection, manager
from lastdigit.api.dependencies import (
    init_dependencies,
    shutdown_dependencies,
    get_service,
    get_settings,
)
from lastdigit.utils.logger import setup_logging
from config.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Starts the predictor service (feed connection + timed jobs) and stops it
    on shutdown.
    """
    setup_logging()
    logger.info("Starting Last Digit Predictor API...")

    try:
        service = init_dependencies()
        service.add_renderer(manager.render)
        service.start()

        app_settings = get_settings()
        logger.info(f"API started successfully on {app_settings.API_HOST}:{app_settings.API_PORT}")

    except Exception as e:
        logger.error(f"Failed to start API: {e}")
        raise

    yield

    logger.info("Shutting down Last Digit Predictor API...")

    await service.stop()
    shutdown_dependencies()

    logger.info("API shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Last Digit Predictor API",
    description="Live last-digit prediction and accuracy tracking for Deriv synthetic indices",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Configure CORS from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(health_router)
app.include_router(predictions_router)
app.include_router(stats_router)
app.include_router(feed_router)


# Root endpoint
@app.get("/", tags=["root"])
async def root() -> JSONResponse:
    """API information."""
    return JSONResponse(
        content={
            "name": "Last Digit Predictor API",
            "version": __version__,
            "endpoints": {
                "health": "/api/health",
                "snapshot": "/api/snapshot",
                "prediction": "/api/prediction",
                "stats": "/api/stats",
                "symbols": "/api/symbols",
                "live": "/api/live",
                "websocket": "/ws",
                "docs": "/docs",
            },
        }
    )


# WebSocket endpoint
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint streaming predictor snapshots.

    Supported client messages:
    - {"type": "snapshot"}
    - {"type": "ping"}

    Server messages:
    - {"type": "connected", ...}
    - {"type": "snapshot", ...} after every state change
    - {"type": "pong", ...}
    - {"type": "error", ...}
    """
    try:
        service = get_service()
    except Exception as e:
        logger.error(f"Failed to get service for WebSocket: {e}")
        service = None

    await handle_websocket_connection(websocket, service)


# Custom exception handlers
@app.exception_handler(404)
async def not_found_handler(request, exc):
    """Handle 404 Not Found errors."""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": "The requested resource was not found",
            "path": str(request.url),
        },
    )


@app.exception_handler(500)
async def internal_error_handler(request, exc):
    """Handle 500 Internal Server errors."""
    import traceback

    logger.error(f"Internal server error: {exc}")

    content = {
        "error": "Internal Server Error",
        "message": "An unexpected error occurred",
    }

    # Include detailed error info in debug mode
    if settings.DEBUG:
        content["detail"] = str(exc)
        content["traceback"] = traceback.format_exc()
        content["path"] = str(request.url)
        content["method"] = request.method

    return JSONResponse(status_code=500, content=content)


# Run with: uvicorn lastdigit.api.main:app --host 0.0.0.0 --port 8000
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lastdigit.api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info",
    )
