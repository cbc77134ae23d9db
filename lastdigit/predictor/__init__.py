"""
Last-digit prediction.

    - PredictionEngine: weighted frequency, transition, hot and cold terms
    - Prediction: pending prediction awaiting settlement
    - InsufficientData: returned while history is below MIN_HISTORY
"""

from lastdigit.predictor.digit_predictor import (
    InsufficientData,
    Prediction,
    PredictionEngine,
    confidence_score,
)

__all__ = [
    'InsufficientData',
    'Prediction',
    'PredictionEngine',
    'confidence_score',
]
