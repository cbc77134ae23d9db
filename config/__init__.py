"""Configuration package for the last-digit predictor."""
