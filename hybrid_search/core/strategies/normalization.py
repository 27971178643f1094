"""Robust score normalization.

Raw channel scores are not comparable: cosine similarities cluster in a narrow
band while BM25 scores are unbounded. Each channel is rescaled into [0, 1]
with percentile clipping so a single extreme score cannot push every other
score towards zero.
"""

import logging
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)

EPSILON = 1e-9
LOW_PERCENTILE = 5.0
HIGH_PERCENTILE = 95.0


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Percentile with linear interpolation between order statistics.

    Uses ``index = (n - 1) * p`` and interpolates between floor and ceil.

    Args:
        sorted_values: Values in ascending order.
        p: Percentile in [0, 100].

    Returns:
        Interpolated value.
    """
    if not len(sorted_values):
        raise ValueError("percentile of empty sequence")
    return float(np.percentile(np.asarray(sorted_values, dtype=float), p, method="linear"))


def robust_normalize(scores: Sequence[float]) -> list[float]:
    """Map raw scores into [0, 1], robust to outliers.

    Args:
        scores: Raw scores, any order.

    Returns:
        Normalized scores, same length and order as input.
    """
    if not len(scores):
        return []

    values = np.asarray(scores, dtype=float)
    ordered = np.sort(values)
    p_low = percentile(ordered, LOW_PERCENTILE)
    p_high = percentile(ordered, HIGH_PERCENTILE)

    if p_high - p_low <= EPSILON:
        low, high = float(ordered[0]), float(ordered[-1])
        if high - low > EPSILON:
            logger.debug(
                f"Percentile range collapsed, min-max over [{low:.4f}, {high:.4f}]"
            )
            return [float(v) for v in (values - low) / (high - low)]
        # All scores equal: keep "present vs absent" apart.
        return [1.0 if v > 0 else 0.0 for v in values]

    clipped = np.clip(values, p_low, p_high)
    return [float(v) for v in (clipped - p_low) / (p_high - p_low)]
