"""Pytest configuration and fixtures for predictor testing."""
import asyncio
import json
from typing import Any, Callable, List
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from lastdigit.scheduler import DigitPredictorService
from lastdigit.stream.client import StreamClient
from lastdigit.stream.tick_buffer import Tick
from lastdigit.tracker.stats_store import StatsStore
from lastdigit.utils.database import InMemoryKeyValueBackend


T0 = 1_700_000_000_000


# Mock classes for testing
class FakeClock:
    """Controllable wall clock in epoch milliseconds."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeTimerHandle:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeTimers:
    """Records ``call_later`` requests instead of arming real timers."""

    def __init__(self):
        self.handles: List[FakeTimerHandle] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimerHandle:
        handle = FakeTimerHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self) -> List[FakeTimerHandle]:
        return [h for h in self.handles if not h.cancelled]


class FakeWebSocket:
    """In-process stand-in for a feed connection; ``None`` in the inbox closes it."""

    def __init__(self, url: str):
        self.url = url
        self.sent: List[Any] = []
        self.closed = False
        self.inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, message: str) -> None:
        self.sent.append(json.loads(message))

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.inbox.put_nowait(None)

    def push(self, message: Any) -> None:
        self.inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def server_close(self) -> None:
        self.inbox.put_nowait(None)

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        message = await self.inbox.get()
        if message is None:
            raise StopAsyncIteration
        return message


class FakeFeed:
    """Connector handing out FakeWebSockets; can be told to refuse connections."""

    def __init__(self):
        self.sockets: List[FakeWebSocket] = []
        self.refuse = False

    async def connect(self, url: str) -> FakeWebSocket:
        if self.refuse:
            raise ConnectionRefusedError("feed unavailable")
        ws = FakeWebSocket(url)
        self.sockets.append(ws)
        return ws

    @property
    def latest(self) -> FakeWebSocket:
        return self.sockets[-1]


async def settle(rounds: int = 20) -> None:
    """Let pending event loop callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def tick_message(quote: Any, epoch: int = 1_700_000_000) -> str:
    return json.dumps({"tick": {"symbol": "R_75", "quote": quote, "epoch": epoch}})


def make_tick(digit: int, timestamp: int = T0, quote: float = None) -> Tick:
    quote = 1000 + digit / 100 if quote is None else quote
    return Tick(
        quote=quote,
        raw_quote=f"{quote:.2f}",
        timestamp=timestamp,
        digit=digit,
        epoch=timestamp // 1000,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return FakeTimers()


@pytest.fixture
def feed():
    return FakeFeed()


@pytest.fixture
def backend():
    return InMemoryKeyValueBackend()


@pytest.fixture
def stats_store(backend):
    return StatsStore(backend)


@pytest.fixture
def service(stats_store, clock, feed, timers):
    """Service whose feed client talks to the fake feed and fake timers."""

    def factory(**kwargs):
        return StreamClient(connector=feed.connect, call_later=timers, **kwargs)

    return DigitPredictorService(store=stats_store, clock=clock, client_factory=factory)


@pytest.fixture
def test_client(service):
    """Create test client with mocked dependencies; the lifespan is not run."""
    from lastdigit.api.main import app
    from lastdigit.api import dependencies

    # Endpoints run on a short-lived loop per request, so keep them off the network
    service.client.connect = MagicMock()

    app.dependency_overrides[dependencies.get_service] = lambda: service

    client = TestClient(app)
    yield client

    # Clear overrides after test
    app.dependency_overrides.clear()
