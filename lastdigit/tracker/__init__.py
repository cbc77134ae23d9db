"""Settlement and the persisted win/loss ledger."""

from .stats_store import SettlementRecord, StatsLedger, StatsStore
from .settlement import SettlementTracker

__all__ = ["SettlementRecord", "StatsLedger", "StatsStore", "SettlementTracker"]
