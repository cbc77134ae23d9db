"""Quote indicators for display."""

from .indicators import compute_indicators

__all__ = ["compute_indicators"]
