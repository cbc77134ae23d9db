"""Tests for the predictor service controller and its timed jobs."""
import json
from unittest.mock import MagicMock

import pytest
from conftest import settle, tick_message

from lastdigit.predictor.digit_predictor import InsufficientData, Prediction
from lastdigit.scheduler import DigitPredictorService
from lastdigit.stream.client import ConnectionState

SNAPSHOT_KEYS = {
    "timestamp",
    "symbol",
    "symbol_label",
    "live",
    "connection_state",
    "live_tick",
    "recent_ticks",
    "digit_frequency",
    "current_prediction",
    "insufficient_data",
    "countdown_sec",
    "stats",
    "recent_settlements",
    "indicators",
}


def feed_digits(service: DigitPredictorService, digits) -> None:
    for i, d in enumerate(digits):
        service.client.handle_message(tick_message(f"1000.{d}", epoch=1_700_000_000 + i))


class TestPredictionCycle:
    """Test suite for run_prediction_cycle."""

    def test_insufficient_history_creates_no_pending(self, service):
        feed_digits(service, [1] * 5)
        outcome = service.run_prediction_cycle()

        assert isinstance(outcome, InsufficientData)
        assert service.tracker.pending is None
        snapshot = service.snapshot()
        assert snapshot["insufficient_data"]["available"] == 5
        assert snapshot["current_prediction"] is None

    def test_cycle_issues_pending_prediction(self, service, clock):
        feed_digits(service, [5, 7] * 10)
        outcome = service.run_prediction_cycle()

        assert isinstance(outcome, Prediction)
        assert outcome.digit == 5
        assert outcome.issued_at == clock.now
        assert service.tracker.pending is outcome
        assert service.snapshot()["current_prediction"]["digit"] == 5

    def test_prediction_settles_on_later_tick(self, service, clock, backend):
        feed_digits(service, [5, 7] * 10)
        service.run_prediction_cycle()

        clock.advance(14000)
        feed_digits(service, [5])
        assert service.tracker.pending is not None

        clock.advance(1001)
        feed_digits(service, [5])

        assert service.tracker.pending is None
        assert service.tracker.ledger.wins == 1
        assert service.tracker.ledger.total == 1
        assert json.loads(backend.data["ph_digit_predictor_stats"])["total"] == 1

    def test_settles_only_when_tick_beats_next_cycle(self, service, clock):
        """Window and cadence are both 15 s, so arrival order decides."""
        feed_digits(service, [5, 7] * 10)
        service.run_prediction_cycle()

        # Tick lands before the next cycle: settled
        clock.advance(15000)
        feed_digits(service, [5])
        service.run_prediction_cycle()
        assert service.tracker.ledger.total == 1
        assert service.tracker.discarded == 0

        # Next cycle fires before any tick: overwritten unsettled
        clock.advance(15000)
        service.run_prediction_cycle()
        feed_digits(service, [5])
        assert service.tracker.ledger.total == 1
        assert service.tracker.discarded == 1
        assert service.tracker.pending is not None

    def test_cycle_runs_without_new_ticks(self, service, clock):
        feed_digits(service, [3] * 20)
        first = service.run_prediction_cycle()
        clock.advance(15000)
        second = service.run_prediction_cycle()

        assert second.issued_at == first.issued_at + 15000
        assert service.tracker.discarded == 1

    def test_notifier_fires_on_prediction(self, stats_store, clock):
        notifier = MagicMock()
        service = DigitPredictorService(store=stats_store, notifier=notifier, clock=clock)

        service.run_prediction_cycle()
        notifier.assert_not_called()

        feed_digits(service, [2] * 20)
        service.run_prediction_cycle()
        notifier.assert_called_once_with()

    def test_notifier_failure_ignored(self, stats_store, clock):
        notifier = MagicMock(side_effect=RuntimeError("audio unavailable"))
        service = DigitPredictorService(store=stats_store, notifier=notifier, clock=clock)
        feed_digits(service, [2] * 20)

        outcome = service.run_prediction_cycle()

        assert isinstance(outcome, Prediction)
        assert service.tracker.pending is outcome


class TestSnapshot:
    """Test suite for snapshots and renderers."""

    def test_snapshot_keys(self, service):
        snapshot = service.snapshot()
        assert set(snapshot) == SNAPSHOT_KEYS
        assert snapshot["symbol"] == "R_75"
        assert snapshot["symbol_label"] == "Volatility 75"
        assert snapshot["connection_state"] == "disconnected"
        assert snapshot["stats"] == {"wins": 0, "total": 0, "win_rate_pct": 0}
        assert snapshot["live_tick"] is None
        assert snapshot["countdown_sec"] is None

    def test_snapshot_after_ticks(self, service):
        feed_digits(service, [1, 2, 2])
        snapshot = service.snapshot()

        assert snapshot["live_tick"]["digit"] == 2
        assert len(snapshot["recent_ticks"]) == 3
        assert snapshot["digit_frequency"][2] == 2

    def test_recent_ticks_limited_to_display_window(self, service):
        feed_digits(service, [i % 10 for i in range(80)])
        assert len(service.snapshot()["recent_ticks"]) == 50

    def test_countdown(self, service, clock):
        service.run_prediction_cycle()
        assert service.countdown_seconds() == 15

        clock.advance(4500)
        assert service.countdown_seconds() == 11

        clock.advance(20000)
        assert service.countdown_seconds() == 0

    def test_renderer_receives_updates(self, service):
        snapshots = []
        service.add_renderer(snapshots.append)

        feed_digits(service, [4])
        service.run_prediction_cycle()

        assert len(snapshots) == 2
        assert snapshots[0]["live_tick"]["digit"] == 4

    def test_renderer_failure_ignored(self, service):
        good = []

        def broken(snapshot):
            raise RuntimeError("display gone")

        service.add_renderer(broken)
        service.add_renderer(good.append)

        feed_digits(service, [4])

        assert len(service.buffer) == 1
        assert len(good) == 1

    def test_remove_renderer(self, service):
        snapshots = []
        service.add_renderer(snapshots.append)
        service.remove_renderer(snapshots.append)
        feed_digits(service, [4])
        assert snapshots == []

    def test_reset_stats(self, service, clock):
        feed_digits(service, [5, 7] * 10)
        service.run_prediction_cycle()
        clock.advance(15000)
        feed_digits(service, [5])
        assert service.tracker.ledger.total == 1

        ledger = service.reset_stats()

        assert ledger.total == 0
        assert service.snapshot()["stats"]["total"] == 0


class TestFeedControl:
    """Test suite for symbol switching and live mode through the service."""

    @pytest.mark.asyncio
    async def test_switch_symbol_drops_history_and_pending(self, service, feed):
        feed_digits(service, [5, 7] * 10)
        service.run_prediction_cycle()

        service.switch_symbol("R_100")
        await settle()

        assert len(service.buffer) == 0
        assert service.tracker.pending is None
        assert service.snapshot()["symbol"] == "R_100"
        assert feed.latest.sent == [{"ticks": "R_100", "subscribe": 1}]

        await service.client.aclose()

    @pytest.mark.asyncio
    async def test_switch_unknown_symbol_raises(self, service):
        with pytest.raises(ValueError):
            service.switch_symbol("BOGUS")
        assert service.client.symbol == "R_75"

    @pytest.mark.asyncio
    async def test_set_live(self, service):
        service.set_live(True)
        await settle()
        assert service.client.state == ConnectionState.SUBSCRIBED

        service.set_live(False)
        await settle()
        assert service.snapshot()["live"] is False
        assert service.client.state == ConnectionState.DISCONNECTED


class TestJobs:
    """Test suite for scheduled job wrappers and lifecycle."""

    @pytest.mark.asyncio
    async def test_job_predict_tracks_runs(self, service):
        await service.job_predict()
        assert service.job_stats["predict"]["runs"] == 1
        assert service.job_stats["predict"]["errors"] == 0
        assert service.job_stats["predict"]["last_run"] is not None

    @pytest.mark.asyncio
    async def test_job_error_counted_not_raised(self, service):
        service.engine = MagicMock()
        service.engine.predict.side_effect = RuntimeError("boom")

        await service.job_predict()

        assert service.job_stats["predict"]["errors"] == 1

    @pytest.mark.asyncio
    async def test_job_countdown_publishes(self, service):
        snapshots = []
        service.add_renderer(snapshots.append)
        await service.job_countdown()
        assert len(snapshots) == 1

    @pytest.mark.asyncio
    async def test_start_and_stop(self, service, feed):
        service.start()
        await settle()

        status = service.get_status()
        assert status["running"] is True
        assert {job.id for job in service.scheduler.get_jobs()} == {"predict", "countdown"}
        assert service.client.state == ConnectionState.SUBSCRIBED
        assert service.countdown_seconds() == 15

        await service.stop()

        assert service.get_status()["running"] is False
        assert feed.latest.closed or service.client.state == ConnectionState.DISCONNECTED
