"""Live last-digit predictor for Deriv synthetic index ticks."""

__version__ = "1.0.0"
