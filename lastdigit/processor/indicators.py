"""
Technical indicators over the buffered tick quotes.

Display-only context for the renderer; the digit prediction does not use
them. Ticks carry a single price, so high/low/close all come from the quote.
"""

from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd

from config.settings import settings


def _last(values: pd.Series) -> Optional[float]:
    if values.empty:
        return None
    value = values.iloc[-1]
    if pd.isna(value) or np.isinf(value):
        return None
    return float(value)


def _ema(close: np.ndarray, span: int) -> pd.Series:
    """Exponential Moving Average seeded with the first value."""
    return pd.Series(close).ewm(span=span, adjust=False).mean()


def _rsi(close: np.ndarray, timeperiod: int) -> Optional[float]:
    """Relative Strength Index over the last ``timeperiod`` changes."""
    if len(close) < timeperiod + 1:
        return None

    delta = np.diff(close[-(timeperiod + 1):])
    avg_gain = delta[delta > 0].sum() / timeperiod
    avg_loss = -delta[delta < 0].sum() / timeperiod
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return float(100 - 100 / (1 + rs))


def _macd(close: np.ndarray, fastperiod: int, slowperiod: int, signalperiod: int) -> Optional[Dict[str, float]]:
    """Moving Average Convergence Divergence."""
    if len(close) < slowperiod:
        return None

    macd_line = _ema(close, fastperiod) - _ema(close, slowperiod)
    signal_line = macd_line.ewm(span=signalperiod, adjust=False).mean()
    histogram = macd_line - signal_line

    return {
        "macd": _last(macd_line),
        "signal": _last(signal_line),
        "histogram": _last(histogram),
    }


def _stoch(close: np.ndarray, fastk_period: int, slowd_period: int) -> Optional[Dict[str, float]]:
    """Stochastic Oscillator; a flat window reads as 50."""
    if len(close) < fastk_period:
        return None

    close_s = pd.Series(close)
    lowest = close_s.rolling(window=fastk_period).min()
    highest = close_s.rolling(window=fastk_period).max()
    span = highest - lowest

    fastk = (100 * (close_s - lowest) / span.where(span != 0)).fillna(50.0)
    fastk[lowest.isna()] = np.nan
    slowd = fastk.rolling(window=slowd_period, min_periods=1).mean()

    return {"k": _last(fastk), "d": _last(slowd)}


def compute_indicators(quotes: Sequence[float]) -> Dict[str, Optional[object]]:
    """
    Compute the indicator panel for a quote history.

    Args:
        quotes: Quotes in arrival order

    Returns:
        Dict with ``ema_fast``, ``ema_slow``, ``rsi``, ``macd`` and ``stochastic``;
        each is None while the history is too short
    """
    close = np.asarray(quotes, dtype=float)
    if close.size == 0:
        return {"ema_fast": None, "ema_slow": None, "rsi": None, "macd": None, "stochastic": None}

    return {
        "ema_fast": _last(_ema(close, settings.MACD_FAST)),
        "ema_slow": _last(_ema(close, settings.MACD_SLOW)),
        "rsi": _rsi(close, settings.RSI_PERIOD),
        "macd": _macd(close, settings.MACD_FAST, settings.MACD_SLOW, settings.MACD_SIGNAL),
        "stochastic": _stoch(close, settings.STOCH_K, settings.STOCH_D),
    }
