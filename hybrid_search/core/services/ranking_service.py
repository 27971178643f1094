"""Merge channel candidates into one ranked list."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..models.config import RetrievalConfig
from ..models.document import Candidate, MergedCandidate, RankedResult
from ..strategies.normalization import robust_normalize
from ..strategies.scoring import blend, normalize_weights, recency_multiplier

logger = logging.getLogger(__name__)


@dataclass
class RankingOutcome:
    """Ranked results before hydration, plus merge statistics."""
    ranked: list[RankedResult]
    merged_count: int
    raw_ranges: dict[str, float] = field(default_factory=dict)


def merge_candidates(
    vector: list[Candidate], lexical: list[Candidate]
) -> list[MergedCandidate]:
    """Union candidates by fragment ID in discovery order (vector first).

    The earliest known creation time wins when both channels report one.
    """
    merged: dict[str, MergedCandidate] = {}

    for candidate in vector:
        entry = merged.get(candidate.fragment_id)
        if entry is None:
            merged[candidate.fragment_id] = MergedCandidate(
                fragment_id=candidate.fragment_id,
                created_at=candidate.created_at,
                vector=candidate,
            )
        else:
            if entry.vector is None or candidate.score > entry.vector.score:
                entry.vector = candidate
            entry.created_at = min(entry.created_at, candidate.created_at)

    for candidate in lexical:
        entry = merged.get(candidate.fragment_id)
        if entry is None:
            merged[candidate.fragment_id] = MergedCandidate(
                fragment_id=candidate.fragment_id,
                created_at=candidate.created_at,
                lexical=candidate,
            )
        else:
            if entry.lexical is None or candidate.score > entry.lexical.score:
                entry.lexical = candidate
            entry.created_at = min(entry.created_at, candidate.created_at)

    return list(merged.values())


def _range(values: list[float]) -> tuple[float, float]:
    return (min(values), max(values)) if values else (0.0, 0.0)


def rank(
    vector: list[Candidate],
    lexical: list[Candidate],
    config: RetrievalConfig,
    now: Optional[datetime] = None,
) -> RankingOutcome:
    """Score and order merged candidates.

    Args:
        vector: Raw vector candidates.
        lexical: Raw lexical candidates.
        config: Effective retrieval config.
        now: Reference time for the recency boost.

    Returns:
        Top ``config.top_k`` results sorted by final score, ties kept in
        discovery order.
    """
    now = now or datetime.now(timezone.utc)
    merged = merge_candidates(vector, lexical)

    vec_raw = [m.vector_score for m in merged]
    text_raw = [m.lexical_score for m in merged]
    vec_norm = robust_normalize(vec_raw)
    text_norm = robust_normalize(text_raw)
    weights = normalize_weights(config.w_vec, config.w_text)

    ranked = []
    for i, candidate in enumerate(merged):
        score = blend(vec_norm[i], text_norm[i], weights)
        if config.recency_boost:
            score *= recency_multiplier(candidate.created_at, now, config.recency_lambda)
        ranked.append(
            RankedResult(
                fragment_id=candidate.fragment_id,
                final_score=score,
                vec_score_norm=vec_norm[i],
                text_score_norm=text_norm[i],
            )
        )

    # sorted() is stable: equal scores keep discovery order
    ranked = sorted(ranked, key=lambda r: r.final_score, reverse=True)[: config.top_k]

    vec_min, vec_max = _range([c.score for c in vector])
    text_min, text_max = _range([c.score for c in lexical])
    logger.debug(
        f"Ranked {len(merged)} merged candidates, kept {len(ranked)} "
        f"(weights vec={weights[0]:.2f} text={weights[1]:.2f})"
    )
    return RankingOutcome(
        ranked=ranked,
        merged_count=len(merged),
        raw_ranges={
            "vec_min": vec_min,
            "vec_max": vec_max,
            "text_min": text_min,
            "text_max": text_max,
        },
    )


def is_insufficient(results: list[RankedResult], min_score: float) -> bool:
    """True when the best score is below ``min_score``. Empty counts as 0."""
    top_score = results[0].final_score if results else 0.0
    return top_score < min_score
