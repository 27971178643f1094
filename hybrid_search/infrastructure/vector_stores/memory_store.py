import logging
from datetime import datetime

import numpy as np

from hybrid_search.core.models.document import Candidate

logger = logging.getLogger(__name__)


class InMemoryVectorIndex:
    """Brute-force cosine index kept in process memory."""

    def __init__(self):
        self._ids: dict[str, list[str]] = {}
        self._vectors: dict[str, list[np.ndarray]] = {}
        self._created_at: dict[str, list[datetime]] = {}

    async def add(
        self,
        collection_id: str,
        ids: list[str],
        embeddings: list[list[float]],
        created_at: list[datetime],
    ) -> None:
        self._ids.setdefault(collection_id, []).extend(ids)
        self._vectors.setdefault(collection_id, []).extend(
            np.asarray(e, dtype=float) for e in embeddings
        )
        self._created_at.setdefault(collection_id, []).extend(created_at)
        logger.debug(f"Vector index {collection_id}: +{len(ids)} vectors")

    async def vector_candidates(
        self, collection_id: str, query_vector: list[float], k: int
    ) -> list[Candidate]:
        vectors = self._vectors.get(collection_id)
        if not vectors:
            return []

        matrix = np.vstack(vectors)
        query = np.asarray(query_vector, dtype=float)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        norms[norms == 0] = 1.0
        similarities = matrix @ query / norms

        order = np.argsort(-similarities, kind="stable")[:k]
        ids = self._ids[collection_id]
        created = self._created_at[collection_id]
        return [
            Candidate(
                fragment_id=ids[i],
                score=float(similarities[i]),
                created_at=created[i],
            )
            for i in order
        ]

    async def embedded_ids(self, collection_id: str) -> set[str]:
        return set(self._ids.get(collection_id, []))
