"""Catalog of supported Deriv volatility indices."""

from typing import Dict, List

SYMBOL_LABELS: Dict[str, str] = {
    "R_10": "Volatility 10",
    "R_10_1S": "Volatility 10 (1s)",
    "R_15_1S": "Volatility 15 (1s)",
    "R_25": "Volatility 25",
    "R_25_1S": "Volatility 25 (1s)",
    "R_30_1S": "Volatility 30 (1s)",
    "R_50": "Volatility 50",
    "R_50_1S": "Volatility 50 (1s)",
    "R_75": "Volatility 75",
    "R_75_1S": "Volatility 75 (1s)",
    "R_90_1S": "Volatility 90 (1s)",
    "R_100": "Volatility 100",
}


def is_known_symbol(symbol: str) -> bool:
    return symbol in SYMBOL_LABELS


def symbol_label(symbol: str) -> str:
    """Human-readable label, falling back to the identifier itself."""
    return SYMBOL_LABELS.get(symbol, symbol)


def list_symbols() -> List[Dict[str, str]]:
    return [{"symbol": s, "label": label} for s, label in SYMBOL_LABELS.items()]
