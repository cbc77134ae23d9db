"""
Statistical last-digit prediction engine.

Scores each digit 0-9 from the recent digit history:
- Weighted multi-window frequency (short/medium/long)
- First-order transition term P(next | last digit)
- Hot-streak multiplier for digits recurring in a short window
- Cold multiplier (mean reversion) for digits absent for a long span

Scores are normalized into a probability distribution; the argmax is the
predicted digit (ties go to the lowest digit).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from config.settings import settings
from lastdigit.utils.clock import ms_to_iso, now_ms
from lastdigit.utils.logger import get_predictor_logger

logger = get_predictor_logger()

DIGITS = range(10)


@dataclass(frozen=True)
class Prediction:
    """
    A predicted last digit awaiting settlement.

    Attributes:
        digit: Predicted digit 0-9
        confidence: 0-100, rewards both probability and margin over the runner-up
        issued_at: Issue time in epoch milliseconds
        distribution: Normalized probability of each digit 0-9
    """
    digit: int
    confidence: int
    issued_at: int
    distribution: tuple = field(default=(), compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "digit": self.digit,
            "confidence": self.confidence,
            "issued_at": self.issued_at,
            "issued_at_iso": ms_to_iso(self.issued_at),
            "distribution": list(self.distribution),
        }


@dataclass(frozen=True)
class InsufficientData:
    """History too short to predict; no pending prediction is created."""
    available: int
    required: int

    def to_dict(self) -> Dict[str, Any]:
        return {"insufficient_data": True, "available": self.available, "required": self.required}


PredictionOutcome = Union[Prediction, InsufficientData]


def confidence_score(distribution: Sequence[float], best: int) -> int:
    """clamp(0, 100, round(100 * (p_best + (p_best - p_second))))."""
    best_p = distribution[best]
    second_p = max((p for d, p in enumerate(distribution) if d != best), default=0.0)
    raw = round(100 * (best_p + (best_p - second_p)))
    return int(min(100, max(0, raw)))


class PredictionEngine:
    """
    Deterministic digit scorer.

    Every constant defaults to the matching setting so the whole scheme can
    be tuned from the environment without code changes.
    """

    def __init__(
        self,
        min_history: Optional[int] = None,
        epsilon: Optional[float] = None,
        frequency_windows: Optional[Sequence[int]] = None,
        frequency_weights: Optional[Sequence[float]] = None,
        transition_window: Optional[int] = None,
        transition_weight: Optional[float] = None,
        hot_streak_count: Optional[int] = None,
        hot_streak_window: Optional[int] = None,
        hot_boost: Optional[float] = None,
        cold_threshold: Optional[int] = None,
        cold_boost: Optional[float] = None,
    ):
        self.min_history = settings.MIN_HISTORY if min_history is None else min_history
        self.epsilon = settings.EPSILON if epsilon is None else epsilon
        self.frequency_windows = list(
            settings.FREQUENCY_WINDOWS if frequency_windows is None else frequency_windows
        )
        self.frequency_weights = list(
            settings.FREQUENCY_WEIGHTS if frequency_weights is None else frequency_weights
        )
        self.transition_window = (
            settings.TRANSITION_WINDOW if transition_window is None else transition_window
        )
        self.transition_weight = (
            settings.TRANSITION_WEIGHT if transition_weight is None else transition_weight
        )
        self.hot_streak_count = settings.HOT_STREAK_COUNT if hot_streak_count is None else hot_streak_count
        self.hot_streak_window = settings.HOT_STREAK_WINDOW if hot_streak_window is None else hot_streak_window
        self.hot_boost = settings.HOT_BOOST if hot_boost is None else hot_boost
        self.cold_threshold = settings.COLD_THRESHOLD if cold_threshold is None else cold_threshold
        self.cold_boost = settings.COLD_BOOST if cold_boost is None else cold_boost

        if len(self.frequency_windows) != len(self.frequency_weights):
            raise ValueError("frequency_windows and frequency_weights must have the same length")

    # ========== SCORING TERMS ==========

    def _frequency_term(self, digits: List[int]) -> List[float]:
        term = [0.0] * 10
        for window, weight in zip(self.frequency_windows, self.frequency_weights):
            recent = digits[-window:]
            if not recent:
                continue
            for d in recent:
                term[d] += weight / len(recent)
        return term

    def _transition_term(self, digits: List[int]) -> List[float]:
        term = [0.0] * 10
        if len(digits) < 2:
            return term

        last_digit = digits[-1]
        pairs = list(zip(digits[:-1], digits[1:]))[-self.transition_window:]
        follow = [0] * 10
        for prev, nxt in pairs:
            if prev == last_digit:
                follow[nxt] += 1

        total = sum(follow)
        if total == 0:
            return term
        return [self.transition_weight * count / total for count in follow]

    def hot_digits(self, digits: List[int]) -> List[int]:
        recent = digits[-self.hot_streak_window:]
        return [d for d in DIGITS if recent.count(d) >= self.hot_streak_count]

    def cold_digits(self, digits: List[int]) -> List[int]:
        """Digits unseen for at least cold_threshold ticks, or never seen."""
        last_seen: Dict[int, int] = {}
        for i, d in enumerate(digits):
            last_seen[d] = i

        cold = []
        for d in DIGITS:
            if d not in last_seen:
                cold.append(d)
            elif len(digits) - 1 - last_seen[d] >= self.cold_threshold:
                cold.append(d)
        return cold

    # ========== PREDICTION ==========

    def distribution(self, digits: Sequence[int]) -> List[float]:
        """Normalized probability of each digit 0-9 (no history check)."""
        digits = list(digits)
        scores = [self.epsilon] * 10

        for d, value in enumerate(self._frequency_term(digits)):
            scores[d] += value
        for d, value in enumerate(self._transition_term(digits)):
            scores[d] += value

        for d in self.hot_digits(digits):
            scores[d] *= self.hot_boost
        for d in self.cold_digits(digits):
            scores[d] *= self.cold_boost

        total = sum(scores)
        return [s / total for s in scores]

    def predict(self, digits: Sequence[int], issued_at: Optional[int] = None) -> PredictionOutcome:
        """
        Predict the next last digit.

        Args:
            digits: Digit history in arrival order
            issued_at: Issue timestamp in epoch ms (default: now)

        Returns:
            Prediction, or InsufficientData when history < min_history
        """
        digits = list(digits)
        if len(digits) < self.min_history:
            logger.debug(f"Insufficient history for prediction: {len(digits)}/{self.min_history}")
            return InsufficientData(available=len(digits), required=self.min_history)

        dist = self.distribution(digits)

        # Strict comparison keeps the lowest digit on ties
        best = 0
        for d in DIGITS:
            if dist[d] > dist[best]:
                best = d

        prediction = Prediction(
            digit=best,
            confidence=confidence_score(dist, best),
            issued_at=now_ms() if issued_at is None else issued_at,
            distribution=tuple(dist),
        )
        logger.info(
            f"Predicted digit {prediction.digit} "
            f"(p={dist[best]:.3f}, confidence={prediction.confidence}%, history={len(digits)})"
        )
        return prediction
