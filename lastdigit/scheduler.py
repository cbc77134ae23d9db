"""
Owning controller for the last-digit predictor.

Wires the feed client, tick history, prediction engine and settlement
tracker together and drives the timed jobs:
- Every PREDICTION_INTERVAL_MS: run a prediction cycle
- Every COUNTDOWN_INTERVAL_MS: publish the countdown to the next cycle

Feed messages and jobs all run on one asyncio event loop. Each handler
finishes its buffer/prediction/ledger update before yielding, so a
settlement and a prediction cycle landing together never interleave.
"""

import math
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.events import EVENT_JOB_EXECUTED, EVENT_JOB_ERROR
from loguru import logger

from config.settings import settings
from lastdigit.predictor.digit_predictor import (
    InsufficientData,
    Prediction,
    PredictionEngine,
    PredictionOutcome,
)
from lastdigit.processor.indicators import compute_indicators
from lastdigit.stream.client import ConnectionState, StreamClient
from lastdigit.stream.symbols import symbol_label
from lastdigit.stream.tick_buffer import Tick, TickBuffer
from lastdigit.tracker.settlement import SettlementTracker
from lastdigit.tracker.stats_store import StatsLedger, StatsStore
from lastdigit.utils.clock import now_ms

Renderer = Callable[[Dict[str, Any]], None]


class DigitPredictorService:
    """
    Single owner of all mutable predictor state.

    External code interacts only through the public methods; presentation
    collaborators subscribe with ``add_renderer`` and receive a snapshot
    after every state change.
    """

    def __init__(
        self,
        store: StatsStore,
        engine: Optional[PredictionEngine] = None,
        notifier: Optional[Callable[[], None]] = None,
        symbol: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None,
        client_factory: Optional[Callable[..., StreamClient]] = None,
    ):
        """
        Initialize the service (nothing is started).

        Args:
            store: Stats ledger persistence
            engine: Prediction engine (default: configured from settings)
            notifier: Parameterless feedback trigger fired on each new prediction
            symbol: Initial symbol (default: settings.DEFAULT_SYMBOL)
            clock: Returns wall-clock epoch milliseconds
            client_factory: Builds the StreamClient; receives the same keyword
                arguments as StreamClient
        """
        self.clock = clock or now_ms
        self.buffer = TickBuffer()
        self.engine = engine or PredictionEngine()
        self.store = store
        self.tracker = SettlementTracker(store)
        self.notifier = notifier

        factory = client_factory or StreamClient
        self.client = factory(
            buffer=self.buffer,
            on_tick=self._on_tick,
            on_state_change=self._on_state_change,
            symbol=symbol or settings.DEFAULT_SYMBOL,
            clock=self.clock,
        )

        self.renderers: List[Renderer] = []
        self.last_outcome: Optional[PredictionOutcome] = None
        self.next_cycle_at: Optional[int] = None
        self.interval_ms = settings.PREDICTION_INTERVAL_MS

        # Scheduler instance
        self.scheduler: Optional[AsyncIOScheduler] = None

        # Job execution tracking
        self.job_stats = {
            "predict": {"runs": 0, "errors": 0, "last_run": None},
            "countdown": {"runs": 0, "errors": 0, "last_run": None},
        }

        logger.info(f"DigitPredictorService initialized for {self.client.symbol}")

    # ========== EVENT HANDLERS ==========

    def _on_tick(self, tick: Tick) -> None:
        self.tracker.on_tick(tick)
        self.publish()

    def _on_state_change(self, state: ConnectionState) -> None:
        logger.info(f"Feed connection {state.value}")
        self.publish()

    # ========== OPERATIONS ==========

    def run_prediction_cycle(self) -> PredictionOutcome:
        """
        Predict from the current history and make the result pending.

        Runs even when no tick arrived since the last cycle. With too little
        history the outcome is InsufficientData and nothing becomes pending.
        """
        now = self.clock()
        self.next_cycle_at = now + self.interval_ms

        outcome = self.engine.predict(self.buffer.digit_sequence(), issued_at=now)
        self.last_outcome = outcome

        if isinstance(outcome, Prediction):
            self.tracker.issue(outcome)
            self._notify_feedback()

        self.publish()
        return outcome

    def switch_symbol(self, symbol: str) -> None:
        """Subscribe to another symbol; history and any pending prediction are dropped."""
        self.client.switch_symbol(symbol)
        self.tracker.pending = None
        self.last_outcome = None
        self.publish()

    def set_live(self, enabled: bool) -> None:
        self.client.set_live(enabled)
        self.publish()

    def reset_stats(self) -> StatsLedger:
        ledger = self.tracker.reset()
        self.publish()
        return ledger

    def add_renderer(self, renderer: Renderer) -> None:
        self.renderers.append(renderer)

    def remove_renderer(self, renderer: Renderer) -> None:
        if renderer in self.renderers:
            self.renderers.remove(renderer)

    # ========== PRESENTATION HOOKS ==========

    def _notify_feedback(self) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier()
        except Exception as e:
            logger.debug(f"Feedback notifier failed: {e!r}")

    def publish(self) -> None:
        """Send a fresh snapshot to every renderer; renderer errors are logged and ignored."""
        if not self.renderers:
            return
        snapshot = self.snapshot()
        for renderer in list(self.renderers):
            try:
                renderer(snapshot)
            except Exception as e:
                logger.warning(f"Renderer failed: {e!r}")

    def countdown_seconds(self) -> Optional[int]:
        if self.next_cycle_at is None:
            return None
        remaining = self.next_cycle_at - self.clock()
        return max(0, math.ceil(remaining / 1000))

    def snapshot(self) -> Dict[str, Any]:
        """Current state for renderers."""
        ledger = self.tracker.ledger
        pending = self.tracker.pending
        latest = self.buffer.latest
        outcome = self.last_outcome

        return {
            "timestamp": self.clock(),
            "symbol": self.client.symbol,
            "symbol_label": symbol_label(self.client.symbol),
            "live": self.client.live,
            "connection_state": self.client.state.value,
            "live_tick": latest.to_dict() if latest else None,
            "recent_ticks": [t.to_dict() for t in self.buffer.ticks(settings.DISPLAY_TICKS)],
            "digit_frequency": self.buffer.digit_frequency(),
            "current_prediction": pending.to_dict() if pending else None,
            "insufficient_data": outcome.to_dict() if isinstance(outcome, InsufficientData) else None,
            "countdown_sec": self.countdown_seconds(),
            "stats": {
                "wins": ledger.wins,
                "total": ledger.total,
                "win_rate_pct": ledger.win_rate_pct,
            },
            "recent_settlements": [
                r.to_display() for r in ledger.recent(settings.RECENT_SETTLEMENTS)
            ],
            "indicators": compute_indicators(self.buffer.quotes()),
        }

    # ========== JOB DEFINITIONS ==========

    async def job_predict(self) -> None:
        self._track_job("predict", self.run_prediction_cycle)

    async def job_countdown(self) -> None:
        self._track_job("countdown", self.publish)

    def _track_job(self, job_name: str, func: Callable[[], Any]) -> None:
        stats = self.job_stats[job_name]
        stats["runs"] += 1
        stats["last_run"] = datetime.utcnow().isoformat()
        try:
            func()
        except Exception as e:
            stats["errors"] += 1
            logger.exception(f"Job {job_name} failed: {e}")

    # ========== LIFECYCLE ==========

    def start(self) -> None:
        """Connect the feed and start the timed jobs (requires a running event loop)."""
        if self.scheduler is not None and self.scheduler.running:
            logger.warning("Service already running")
            return

        self.client.connect()

        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_job(
            self.job_predict,
            trigger=IntervalTrigger(seconds=self.interval_ms / 1000),
            id="predict",
            name="Prediction cycle",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.job_countdown,
            trigger=IntervalTrigger(seconds=settings.COUNTDOWN_INTERVAL_MS / 1000),
            id="countdown",
            name="Countdown",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.add_listener(self._job_executed_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)
        self.scheduler.start()
        self.next_cycle_at = self.clock() + self.interval_ms

        logger.info(
            f"Service started: predicting every {self.interval_ms / 1000:.0f}s on {self.client.symbol}"
        )

    async def stop(self) -> None:
        if self.scheduler is not None and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.scheduler = None
        await self.client.aclose()
        logger.info("Service stopped")

    def _job_executed_listener(self, event) -> None:
        if event.exception:
            logger.error(f"Job {event.job_id} raised: {event.exception}")

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.scheduler is not None and self.scheduler.running,
            "stream": self.client.get_status(),
            "buffer_size": len(self.buffer),
            "pending_prediction": self.tracker.pending is not None,
            "discarded_predictions": self.tracker.discarded,
            "jobs": self.job_stats,
        }
