"""Scoring and ordering strategies."""
from .normalization import robust_normalize
from .scoring import normalize_weights, recency_multiplier
from .continuity import promote_anchor

__all__ = [
    "robust_normalize",
    "normalize_weights",
    "recency_multiplier",
    "promote_anchor",
]
