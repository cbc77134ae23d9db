"""Tick feed: digit extraction, tick history and the streaming client."""

from lastdigit.stream.digits import NoDigitFound, extract_last_digit
from lastdigit.stream.tick_buffer import Tick, TickBuffer
from lastdigit.stream.symbols import SYMBOL_LABELS, list_symbols, symbol_label
from lastdigit.stream.client import (
    ConnectionEvent,
    ConnectionState,
    StreamClient,
    parse_tick,
    subscribe_request,
)

__all__ = [
    'NoDigitFound',
    'extract_last_digit',
    'Tick',
    'TickBuffer',
    'SYMBOL_LABELS',
    'list_symbols',
    'symbol_label',
    'ConnectionEvent',
    'ConnectionState',
    'StreamClient',
    'parse_tick',
    'subscribe_request',
]
