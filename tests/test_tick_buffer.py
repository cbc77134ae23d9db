"""Tests for the rolling tick history and symbol catalog."""
from conftest import T0, make_tick

from lastdigit.stream.symbols import is_known_symbol, list_symbols, symbol_label
from lastdigit.stream.tick_buffer import TickBuffer


class TestTickBuffer:
    """Test suite for TickBuffer."""

    def test_capacity_keeps_most_recent(self):
        """150 appends leave exactly the last 100, oldest first."""
        buffer = TickBuffer(capacity=100)
        for i in range(150):
            buffer.append(make_tick(i % 10, timestamp=T0 + i))

        assert len(buffer) == 100
        timestamps = [t.timestamp for t in buffer.ticks()]
        assert timestamps == [T0 + i for i in range(50, 150)]
        assert buffer.digit_sequence() == [i % 10 for i in range(50, 150)]

    def test_explicit_zero_capacity_is_kept(self):
        buffer = TickBuffer(capacity=0)
        buffer.append(make_tick(1))

        assert buffer.capacity == 0
        assert len(buffer) == 0

    def test_default_capacity_from_settings(self):
        assert TickBuffer().capacity == 100

    def test_digit_sequence_window(self):
        buffer = TickBuffer()
        for d in [1, 2, 3, 4]:
            buffer.append(make_tick(d))

        assert buffer.digit_sequence(2) == [3, 4]
        assert buffer.digit_sequence(10) == [1, 2, 3, 4]
        assert buffer.digit_sequence(0) == []
        assert buffer.digit_sequence(-1) == []

    def test_ticks_window(self):
        buffer = TickBuffer()
        for i in range(5):
            buffer.append(make_tick(i, timestamp=T0 + i))

        assert [t.digit for t in buffer.ticks(3)] == [2, 3, 4]
        assert buffer.ticks(0) == []

    def test_empty_buffer(self):
        buffer = TickBuffer()
        assert len(buffer) == 0
        assert buffer.latest is None
        assert buffer.digit_sequence() == []
        assert buffer.digit_frequency() == [0] * 10

    def test_latest_and_clear(self):
        buffer = TickBuffer()
        buffer.append(make_tick(3, timestamp=T0))
        buffer.append(make_tick(8, timestamp=T0 + 1))

        assert buffer.latest.digit == 8

        buffer.clear()
        assert len(buffer) == 0
        assert buffer.latest is None

    def test_digit_frequency(self):
        buffer = TickBuffer()
        for d in [7, 7, 0, 9, 7]:
            buffer.append(make_tick(d))

        frequency = buffer.digit_frequency()
        assert frequency[7] == 3
        assert frequency[0] == 1
        assert frequency[9] == 1
        assert sum(frequency) == 5

    def test_quotes_in_arrival_order(self):
        buffer = TickBuffer()
        buffer.append(make_tick(1, quote=10.01))
        buffer.append(make_tick(2, quote=10.02))
        assert buffer.quotes() == [10.01, 10.02]

    def test_tick_to_dict(self):
        tick = make_tick(5, timestamp=T0, quote=1234.05)
        data = tick.to_dict()
        assert data["digit"] == 5
        assert data["raw_quote"] == "1234.05"
        assert data["timestamp"] == T0


class TestSymbols:
    """Test suite for the symbol catalog."""

    def test_known_symbols(self):
        assert is_known_symbol("R_75")
        assert is_known_symbol("R_100")
        assert not is_known_symbol("FRXEURUSD")

    def test_label_fallback(self):
        assert symbol_label("R_50") == "Volatility 50"
        assert symbol_label("XYZ") == "XYZ"

    def test_list_symbols_structure(self):
        symbols = list_symbols()
        assert len(symbols) == 12
        assert all(set(s) == {"symbol", "label"} for s in symbols)
