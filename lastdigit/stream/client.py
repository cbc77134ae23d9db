"""
Deriv tick feed client.

Owns the single WebSocket subscription and its reconnect timer. The
connection lifecycle is an explicit state machine:

    DISCONNECTED --CONNECT--> CONNECTING --OPENED--> SUBSCRIBED
         ^                        |                      |
         |                      CLOSED                 CLOSED
         |                        v                      v
    RETRY_PENDING <--RETRY_SCHEDULED-- DISCONNECTED <----+

Every connection attempt gets a generation number; events coming from a
superseded connection are discarded, so a symbol switch or a live-mode
toggle can never leave two connections or two pending reconnects behind.
"""

import asyncio
import json
import math
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

import websockets
from websockets.exceptions import WebSocketException

from config.settings import settings
from lastdigit.stream.digits import NoDigitFound, extract_last_digit
from lastdigit.stream.symbols import is_known_symbol
from lastdigit.stream.tick_buffer import Tick, TickBuffer
from lastdigit.utils.clock import now_ms
from lastdigit.utils.logger import get_stream_logger

logger = get_stream_logger()


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RETRY_PENDING = "retry_pending"


class ConnectionEvent(str, Enum):
    CONNECT = "connect"
    OPENED = "opened"
    MESSAGE_RECEIVED = "message_received"
    CLOSED = "closed"
    RETRY_SCHEDULED = "retry_scheduled"
    DISCONNECT = "disconnect"


_S = ConnectionState
_E = ConnectionEvent

TRANSITIONS: Dict[Tuple[ConnectionState, ConnectionEvent], ConnectionState] = {
    (_S.DISCONNECTED, _E.CONNECT): _S.CONNECTING,
    (_S.RETRY_PENDING, _E.CONNECT): _S.CONNECTING,
    (_S.CONNECTING, _E.OPENED): _S.SUBSCRIBED,
    (_S.CONNECTING, _E.CLOSED): _S.DISCONNECTED,
    (_S.SUBSCRIBED, _E.MESSAGE_RECEIVED): _S.SUBSCRIBED,
    (_S.SUBSCRIBED, _E.CLOSED): _S.DISCONNECTED,
    (_S.DISCONNECTED, _E.RETRY_SCHEDULED): _S.RETRY_PENDING,
    (_S.DISCONNECTED, _E.DISCONNECT): _S.DISCONNECTED,
    (_S.CONNECTING, _E.DISCONNECT): _S.DISCONNECTED,
    (_S.SUBSCRIBED, _E.DISCONNECT): _S.DISCONNECTED,
    (_S.RETRY_PENDING, _E.DISCONNECT): _S.DISCONNECTED,
}


def subscribe_request(symbol: str) -> Dict[str, Any]:
    return {"ticks": symbol, "subscribe": 1}


def parse_tick(payload: Dict[str, Any], received_at: int) -> Tick:
    """
    Build a Tick from the ``tick`` object of a feed message.

    Args:
        payload: ``{"quote": number|string, "epoch": number}``
        received_at: Arrival time in epoch milliseconds

    Returns:
        Tick

    Raises:
        ValueError: If the quote is missing, unparseable or not finite
        NoDigitFound: If the quote text holds no digit
    """
    raw = payload.get("quote")
    if raw is None or isinstance(raw, bool):
        raise ValueError("tick has no quote")

    raw_text = raw if isinstance(raw, str) else str(raw)
    quote = float(raw_text)
    if not math.isfinite(quote):
        raise ValueError(f"non-finite quote {raw_text!r}")

    digit = extract_last_digit(raw_text)

    try:
        epoch = int(float(payload.get("epoch")))
    except (TypeError, ValueError, OverflowError):
        epoch = received_at // 1000

    return Tick(
        quote=quote,
        raw_quote=raw_text.strip(),
        timestamp=received_at,
        digit=digit,
        epoch=epoch,
    )


async def _open_websocket(url: str):
    return await websockets.connect(
        url,
        open_timeout=settings.CONNECT_TIMEOUT_SEC,
        ping_interval=20,
        ping_timeout=20,
    )


class StreamClient:
    """
    Resilient single-subscription client for the Deriv tick stream.

    Valid ticks are appended to the TickBuffer and then handed to
    ``on_tick``; state changes are reported to ``on_state_change``.
    All methods must be called from the event loop thread.
    """

    def __init__(
        self,
        buffer: TickBuffer,
        on_tick: Optional[Callable[[Tick], None]] = None,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
        symbol: Optional[str] = None,
        url: Optional[str] = None,
        reconnect_delay_ms: Optional[int] = None,
        connector: Optional[Callable[[str], Awaitable[Any]]] = None,
        call_later: Optional[Callable[[float, Callable[[], None]], Any]] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Initialize the client (no connection is opened).

        Args:
            buffer: Tick history fed by this client
            on_tick: Called after each valid tick is buffered
            on_state_change: Called with the new state on every transition
            symbol: Initial symbol (default: settings.DEFAULT_SYMBOL)
            url: Feed URL (default: settings.WS_URL)
            reconnect_delay_ms: Delay before reconnecting after an unexpected close
            connector: Coroutine function opening a WebSocket for a URL
            call_later: Timer factory with ``loop.call_later`` semantics
            clock: Returns wall-clock epoch milliseconds
        """
        self.buffer = buffer
        self.symbol = symbol or settings.DEFAULT_SYMBOL
        self.url = url or settings.WS_URL
        self.reconnect_delay_ms = (
            settings.RECONNECT_DELAY_MS if reconnect_delay_ms is None else reconnect_delay_ms
        )
        self.live = True
        self.state = ConnectionState.DISCONNECTED

        self._on_tick = on_tick
        self._on_state_change = on_state_change
        self._connector = connector or _open_websocket
        self._call_later = call_later
        self._clock = clock or now_ms

        self._ws = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle = None
        self._generation = 0

        # Counters
        self.messages_received = 0
        self.ticks_accepted = 0
        self.messages_dropped = 0
        self.reconnect_count = 0

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # ========== PUBLIC OPERATIONS ==========

    def connect(self, symbol: Optional[str] = None) -> None:
        """Open the connection and subscribe; no-op while connecting or subscribed."""
        if self.state in (ConnectionState.CONNECTING, ConnectionState.SUBSCRIBED):
            logger.debug(f"connect() ignored, already {self.state.value}")
            return

        if symbol is not None:
            self.symbol = symbol

        self._cancel_reconnect()
        self._generation += 1
        generation = self._generation
        self._dispatch(ConnectionEvent.CONNECT)

        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(generation, self.symbol))

    def switch_symbol(self, symbol: str) -> None:
        """Drop the current subscription and history, then subscribe to ``symbol``."""
        if not is_known_symbol(symbol):
            raise ValueError(f"Unknown symbol: {symbol}")

        self._cancel_reconnect()
        self._close_connection()
        self.buffer.clear()
        logger.info(f"Switching symbol {self.symbol} -> {symbol}")
        self.symbol = symbol
        self.connect(symbol)

    def set_live(self, enabled: bool) -> None:
        """Enable (connect) or disable (disconnect, stay quiescent) live mode."""
        self.live = enabled
        if enabled:
            logger.info("Live mode enabled")
            self.connect()
        else:
            self._cancel_reconnect()
            self._close_connection()
            logger.info("Live mode disabled")

    async def aclose(self) -> None:
        """Shut down: cancel timers and wait for the connection task to finish."""
        self.live = False
        self._cancel_reconnect()
        task = self._task
        self._close_connection()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def handle_message(self, raw: Any) -> Optional[Tick]:
        """
        Process one inbound feed message.

        Malformed messages, non-finite quotes and digitless quotes are dropped
        without touching the buffer.

        Returns:
            The buffered Tick, or None when the message was dropped
        """
        self.messages_received += 1

        try:
            # parse_float=str keeps the exact quote text, trailing zeros included
            message = json.loads(raw, parse_float=str)
        except (TypeError, ValueError) as e:
            self.messages_dropped += 1
            logger.debug(f"Dropping unparseable message: {e}")
            return None

        if not isinstance(message, dict):
            self.messages_dropped += 1
            return None

        if message.get("error"):
            self.messages_dropped += 1
            logger.warning(f"Feed error: {message['error']}")
            return None

        payload = message.get("tick")
        if not isinstance(payload, dict):
            # subscription acks, pings and other non-tick traffic
            return None

        try:
            tick = parse_tick(payload, received_at=self._clock())
        except NoDigitFound as e:
            self.messages_dropped += 1
            logger.debug(f"Dropping tick: {e}")
            return None
        except (ValueError, ArithmeticError) as e:
            self.messages_dropped += 1
            logger.debug(f"Dropping tick with invalid fields: {e!r}")
            return None

        self.buffer.append(tick)
        self.ticks_accepted += 1
        if self._on_tick is not None:
            self._on_tick(tick)
        return tick

    def get_status(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "symbol": self.symbol,
            "live": self.live,
            "reconnect_pending": self.reconnect_pending,
            "messages_received": self.messages_received,
            "ticks_accepted": self.ticks_accepted,
            "messages_dropped": self.messages_dropped,
            "reconnect_count": self.reconnect_count,
        }

    # ========== CONNECTION LIFECYCLE ==========

    async def _run(self, generation: int, symbol: str) -> None:
        ws = None
        try:
            ws = await asyncio.wait_for(
                self._connector(self.url), timeout=settings.CONNECT_TIMEOUT_SEC
            )
            if generation != self._generation:
                return

            self._ws = ws
            await ws.send(json.dumps(subscribe_request(symbol)))
            self._dispatch(ConnectionEvent.OPENED)
            logger.info(f"Subscribed to {symbol} ticks")

            async for raw in ws:
                if generation != self._generation:
                    return
                self._dispatch(ConnectionEvent.MESSAGE_RECEIVED)
                self.handle_message(raw)

            logger.warning(f"Feed connection closed by server ({symbol})")
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            logger.warning(f"Feed connection lost ({symbol}): {e!r}")
        except Exception as e:
            # Any handler failure closes this connection and schedules a reconnect
            logger.exception(f"Feed handler failed ({symbol}): {e!r}")
        finally:
            if ws is not None:
                await self._close_quietly(ws)
            if self._ws is ws:
                self._ws = None

        if generation == self._generation:
            self._on_unexpected_close()

    def _on_unexpected_close(self) -> None:
        self._task = None
        self._dispatch(ConnectionEvent.CLOSED)
        if self.live:
            self._schedule_reconnect()

    def _close_connection(self) -> None:
        """Abandon the current connection; its task closes the socket on exit."""
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
        self._ws = None
        if self.state != ConnectionState.DISCONNECTED:
            self._dispatch(ConnectionEvent.DISCONNECT)

    @staticmethod
    async def _close_quietly(ws) -> None:
        try:
            await ws.close()
        except (OSError, WebSocketException) as e:
            logger.debug(f"Error while closing feed socket: {e!r}")

    # ========== RECONNECT TIMER ==========

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()
        delay_sec = self.reconnect_delay_ms / 1000
        call_later = self._call_later or asyncio.get_running_loop().call_later
        self._reconnect_handle = call_later(delay_sec, self._fire_reconnect)
        self._dispatch(ConnectionEvent.RETRY_SCHEDULED)
        logger.info(f"Reconnecting in {delay_sec:.1f}s")

    def _cancel_reconnect(self) -> None:
        handle, self._reconnect_handle = self._reconnect_handle, None
        if handle is not None:
            handle.cancel()
            logger.debug("Pending reconnect cancelled")

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        if not self.live:
            return
        self.reconnect_count += 1
        self.connect()

    # ========== STATE MACHINE ==========

    def _dispatch(self, event: ConnectionEvent) -> None:
        new_state = TRANSITIONS.get((self.state, event))
        if new_state is None:
            logger.debug(f"Ignoring {event.value} in state {self.state.value}")
            return
        if new_state == self.state:
            return

        old_state, self.state = self.state, new_state
        logger.debug(f"Connection {old_state.value} -> {new_state.value} on {event.value}")
        if self._on_state_change is not None:
            self._on_state_change(new_state)
