"""Durable, capped win/loss ledger."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from config.settings import settings
from lastdigit.utils.clock import ms_to_iso
from lastdigit.utils.database import KeyValueBackend
from lastdigit.utils.logger import get_tracker_logger

logger = get_tracker_logger()


class SettlementRecord(BaseModel):
    """One settled prediction; serialized as ``{t, pred, actual, win}``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    timestamp: int = Field(..., alias="t", description="Settlement time in epoch ms")
    predicted_digit: int = Field(..., alias="pred", ge=0, le=9)
    actual_digit: int = Field(..., alias="actual", ge=0, le=9)
    win: bool

    def to_display(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "time": ms_to_iso(self.timestamp),
            "predicted_digit": self.predicted_digit,
            "actual_digit": self.actual_digit,
            "win": self.win,
            "result": "WIN" if self.win else "LOSS",
        }


class StatsLedger(BaseModel):
    """Running win/total count plus a capped settlement log."""

    model_config = ConfigDict(populate_by_name=True)

    wins: int = Field(0, ge=0)
    total: int = Field(0, ge=0)
    log: List[SettlementRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_counts(self) -> "StatsLedger":
        if self.wins > self.total:
            raise ValueError(f"wins ({self.wins}) exceeds total ({self.total})")
        return self

    @property
    def win_rate_pct(self) -> int:
        """Win rate rounded to a whole percent (0 when nothing settled)."""
        if not self.total:
            return 0
        return round(100 * self.wins / self.total)

    def record(self, entry: SettlementRecord, capacity: int) -> None:
        self.total += 1
        if entry.win:
            self.wins += 1
        self.log.append(entry)
        if len(self.log) > capacity:
            del self.log[: len(self.log) - capacity]

    def recent(self, n: int) -> List[SettlementRecord]:
        """Last ``n`` records, newest first."""
        return list(reversed(self.log[-n:])) if n > 0 else []

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class StatsStore:
    """
    Ledger persistence behind a key/value backend.

    ``read`` never raises and ``write`` never surfaces failures: storage is
    best-effort and a broken store must not stop the session.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        key: Optional[str] = None,
        log_size: Optional[int] = None,
    ):
        self.backend = backend
        self.key = settings.STATS_STORAGE_KEY if key is None else key
        self.log_size = settings.STATS_LOG_SIZE if log_size is None else log_size

    def read(self) -> StatsLedger:
        """Return the persisted ledger, or a zeroed one if absent or unreadable."""
        try:
            raw = self.backend.get(self.key)
        except Exception as e:
            logger.warning(f"Stats storage unreadable, using empty ledger: {e!r}")
            return StatsLedger()

        if not raw:
            return StatsLedger()

        try:
            ledger = StatsLedger.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Stored stats are corrupt, using empty ledger: {e.error_count()} errors")
            return StatsLedger()

        if len(ledger.log) > self.log_size:
            ledger.log = ledger.log[-self.log_size:]
        return ledger

    def write(self, ledger: StatsLedger) -> bool:
        """Persist the ledger; returns False (and logs) on failure."""
        try:
            self.backend.set(self.key, ledger.to_json())
            return True
        except Exception as e:
            logger.warning(f"Failed to persist stats: {e!r}")
            return False

    def reset(self) -> StatsLedger:
        ledger = StatsLedger()
        self.write(ledger)
        logger.info("Stats ledger reset")
        return ledger
