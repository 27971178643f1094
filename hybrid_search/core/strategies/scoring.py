"""Blended score math."""
import math
from datetime import datetime

MAX_RECENCY_BOOST = 0.1
SECONDS_PER_DAY = 86400.0


def normalize_weights(w_vec: float, w_text: float) -> tuple[float, float]:
    """Scale channel weights so they sum to 1.

    Args:
        w_vec: Configured vector weight.
        w_text: Configured lexical weight.

    Returns:
        (vector weight, lexical weight). Both zero falls back to 0.5/0.5.
    """
    total = w_vec + w_text
    if total <= 0:
        return 0.5, 0.5
    return w_vec / total, w_text / total


def blend(vec_norm: float, text_norm: float, weights: tuple[float, float]) -> float:
    """Weighted combination of normalized channel scores."""
    wv, wt = weights
    return wv * vec_norm + wt * text_norm


def recency_multiplier(created_at: datetime, now: datetime, decay: float) -> float:
    """Multiplicative boost favouring newer fragments.

    Args:
        created_at: Fragment creation time.
        now: Reference time.
        decay: Exponential decay rate per day.

    Returns:
        Value in [1, 1 + MAX_RECENCY_BOOST].
    """
    age_days = max(0.0, (now - created_at).total_seconds() / SECONDS_PER_DAY)
    return 1.0 + MAX_RECENCY_BOOST * math.exp(-decay * age_days)
