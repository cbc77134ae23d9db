"""Utility modules for the last-digit predictor."""

from .clock import ms_to_iso, now_ms
from .database import InMemoryKeyValueBackend, KeyValueBackend, SQLiteKeyValueBackend
from .logger import get_logger, setup_logging

__all__ = [
    "ms_to_iso",
    "now_ms",
    "InMemoryKeyValueBackend",
    "KeyValueBackend",
    "SQLiteKeyValueBackend",
    "get_logger",
    "setup_logging",
]
