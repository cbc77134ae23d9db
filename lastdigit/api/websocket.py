"""WebSocket handler pushing predictor snapshots to browser renderers."""

import asyncio
import json
import math
from datetime import datetime
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from lastdigit.scheduler import DigitPredictorService
from lastdigit.utils.logger import get_api_logger

logger = get_api_logger()


def sanitize_for_json(obj):
    """
    Replace NaN/Inf values with None for JSON serialization.

    Args:
        obj: Object to sanitize (dict, list, float, or other type)

    Returns:
        Sanitized object safe for JSON serialization
    """
    if isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v) for v in obj]
    elif isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    return obj


class ConnectionManager:
    """
    Manages WebSocket connections and broadcasts.

    ``render`` is registered with the predictor service as a renderer: it
    is synchronous and fire-and-forget, scheduling the actual broadcast on
    the running event loop.
    """

    def __init__(self):
        """Initialize connection manager."""
        self.active_connections: Set[WebSocket] = set()
        self._pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info(f"WebSocket connected. Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        self.active_connections.discard(websocket)
        logger.info(f"WebSocket disconnected. Total connections: {len(self.active_connections)}")

    async def send_personal_message(self, message: Dict[str, Any], websocket: WebSocket) -> None:
        """Send a message to a specific client."""
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.error(f"Failed to send personal message: {e}")
            self.disconnect(websocket)

    async def broadcast(self, message: Dict[str, Any]) -> None:
        """Broadcast a message to all connected clients."""
        disconnected = set()

        for connection in list(self.active_connections):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.error(f"Failed to broadcast to connection: {e}")
                disconnected.add(connection)

        # Clean up disconnected clients
        for connection in disconnected:
            self.disconnect(connection)

    def render(self, snapshot: Dict[str, Any]) -> None:
        """Schedule a snapshot broadcast; a no-op without clients."""
        if not self.active_connections:
            return
        message = sanitize_for_json({"type": "snapshot", **snapshot})
        task = asyncio.get_running_loop().create_task(self.broadcast(message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


# Global connection manager instance
manager = ConnectionManager()


async def handle_websocket_connection(
    websocket: WebSocket,
    service: Optional[DigitPredictorService] = None,
) -> None:
    """
    Handle a WebSocket connection lifecycle.

    Sends a welcome message plus the current snapshot, then answers client
    messages until the client disconnects.
    """
    await manager.connect(websocket)

    await manager.send_personal_message(
        {
            "type": "connected",
            "message": "Connected to Last Digit Predictor",
            "timestamp": datetime.utcnow().isoformat(),
        },
        websocket,
    )
    if service is not None:
        await manager.send_personal_message(
            sanitize_for_json({"type": "snapshot", **service.snapshot()}),
            websocket,
        )

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await manager.send_personal_message(
                    {"type": "error", "message": "Invalid JSON format"},
                    websocket,
                )
                continue

            await process_client_message(websocket, message, service)

    except WebSocketDisconnect:
        logger.info("Client disconnected normally")
        manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        manager.disconnect(websocket)


async def process_client_message(
    websocket: WebSocket,
    message: Dict[str, Any],
    service: Optional[DigitPredictorService],
) -> None:
    """
    Process incoming message from WebSocket client.

    Supports commands:
    - snapshot: Request the current snapshot
    - ping: Health check
    """
    msg_type = message.get("type", "") if isinstance(message, dict) else ""

    if msg_type == "snapshot":
        if service is None:
            await manager.send_personal_message(
                {"type": "error", "message": "Predictor not available"},
                websocket,
            )
            return
        await manager.send_personal_message(
            sanitize_for_json({"type": "snapshot", **service.snapshot()}),
            websocket,
        )

    elif msg_type == "ping":
        await manager.send_personal_message(
            {
                "type": "pong",
                "timestamp": datetime.utcnow().isoformat(),
            },
            websocket,
        )

    else:
        await manager.send_personal_message(
            {
                "type": "error",
                "message": f"Unknown message type: {msg_type}",
            },
            websocket,
        )
