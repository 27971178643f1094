"""Continuity promotion for conversational follow-ups."""

import logging
from typing import Optional

from ..models.document import RankedResult

logger = logging.getLogger(__name__)


def promote_anchor(
    results: list[RankedResult], anchor_id: Optional[str]
) -> tuple[list[RankedResult], bool]:
    """Move the anchor fragment to the top of an already ranked list.

    Scores are left untouched; only the order changes. Results after the
    anchor keep their relative order and duplicates are dropped.

    Args:
        results: Ranked results.
        anchor_id: Fragment that answered the previous turn.

    Returns:
        (reordered results, whether the anchor was promoted).
    """
    if anchor_id is None or len(results) < 2:
        return results, False

    index = next(
        (i for i, r in enumerate(results) if r.fragment_id == anchor_id), -1
    )
    if index <= 0:
        return results, False

    anchor = results[index]
    reordered = [anchor]
    seen = {anchor.fragment_id}
    for result in results:
        if result.fragment_id in seen:
            continue
        seen.add(result.fragment_id)
        reordered.append(result)

    logger.info(f"Continuity: promoted {anchor_id} from #{index} to #0")
    return reordered, True
