"""Settlement of the pending prediction against later ticks."""

from typing import Optional

from config.settings import settings
from lastdigit.predictor.digit_predictor import Prediction
from lastdigit.stream.tick_buffer import Tick
from lastdigit.tracker.stats_store import SettlementRecord, StatsLedger, StatsStore
from lastdigit.utils.logger import get_tracker_logger

logger = get_tracker_logger()


class SettlementTracker:
    """
    Holds at most one pending prediction and scores it once.

    A prediction settles on the first tick whose timestamp is at least
    ``settlement_window_ms`` after it was issued, the moment a digit-match
    contract of the same duration would expire.
    """

    def __init__(self, store: StatsStore, settlement_window_ms: Optional[int] = None):
        self.store = store
        self.settlement_window_ms = (
            settings.SETTLEMENT_WINDOW_MS if settlement_window_ms is None else settlement_window_ms
        )
        self.pending: Optional[Prediction] = None
        self.ledger: StatsLedger = store.read()
        self.discarded = 0

    def issue(self, prediction: Prediction) -> None:
        """Make ``prediction`` the pending one; an unsettled predecessor is discarded."""
        if self.pending is not None:
            self.discarded += 1
            logger.debug(
                f"Discarding unsettled prediction {self.pending.digit} "
                f"issued at {self.pending.issued_at}"
            )
        self.pending = prediction

    def on_tick(self, tick: Tick) -> Optional[SettlementRecord]:
        """
        Settle the pending prediction if its window has elapsed.

        Returns:
            The new SettlementRecord, or None when nothing was settled
        """
        pending = self.pending
        if pending is None:
            return None
        if tick.timestamp < pending.issued_at + self.settlement_window_ms:
            return None

        record = SettlementRecord(
            timestamp=tick.timestamp,
            predicted_digit=pending.digit,
            actual_digit=tick.digit,
            win=tick.digit == pending.digit,
        )
        self.ledger.record(record, capacity=self.store.log_size)
        self.pending = None
        self.store.write(self.ledger)

        logger.info(
            f"Settled prediction {record.predicted_digit} vs actual {record.actual_digit}: "
            f"{'WIN' if record.win else 'LOSS'} ({self.ledger.wins}/{self.ledger.total})"
        )
        return record

    def reset(self) -> StatsLedger:
        """Zero and persist the ledger; a pending prediction is kept."""
        self.ledger = self.store.reset()
        return self.ledger
