"""Fixed-capacity rolling history of ticks."""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterator, List, Optional

from config.settings import settings


@dataclass(frozen=True)
class Tick:
    """
    One price update from the feed.

    Attributes:
        quote: Parsed quote value (always finite)
        raw_quote: Quote text exactly as received
        timestamp: Arrival time in epoch milliseconds
        digit: Last digit of raw_quote
        epoch: Feed epoch in seconds
    """
    quote: float
    raw_quote: str
    timestamp: int
    digit: int
    epoch: int = 0

    def to_dict(self) -> dict:
        return {
            "quote": self.quote,
            "raw_quote": self.raw_quote,
            "timestamp": self.timestamp,
            "epoch": self.epoch,
            "digit": self.digit,
        }


class TickBuffer:
    """Rolling tick history; the oldest tick is evicted first."""

    def __init__(self, capacity: Optional[int] = None):
        self.capacity = settings.TICK_HISTORY_SIZE if capacity is None else capacity
        self._ticks: Deque[Tick] = deque()

    def append(self, tick: Tick) -> None:
        self._ticks.append(tick)
        while len(self._ticks) > self.capacity:
            self._ticks.popleft()

    def clear(self) -> None:
        self._ticks.clear()

    def digit_sequence(self, n: Optional[int] = None) -> List[int]:
        """Last ``min(n, len)`` digits in arrival order (all when n is None)."""
        digits = [t.digit for t in self._ticks]
        if n is None:
            return digits
        if n <= 0:
            return []
        return digits[-n:]

    def ticks(self, n: Optional[int] = None) -> List[Tick]:
        ticks = list(self._ticks)
        if n is None:
            return ticks
        return ticks[-n:] if n > 0 else []

    def quotes(self) -> List[float]:
        return [t.quote for t in self._ticks]

    def digit_frequency(self) -> List[int]:
        """Occurrence count of each digit 0-9 over the whole buffer."""
        counts = [0] * 10
        for tick in self._ticks:
            counts[tick.digit] += 1
        return counts

    @property
    def latest(self) -> Optional[Tick]:
        return self._ticks[-1] if self._ticks else None

    def __len__(self) -> int:
        return len(self._ticks)

    def __iter__(self) -> Iterator[Tick]:
        return iter(list(self._ticks))
