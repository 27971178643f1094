"""Vector index protocol for dependency injection."""
from datetime import datetime
from typing import Protocol, runtime_checkable

from ..models.document import Candidate


@runtime_checkable
class VectorIndexProtocol(Protocol):
    """Protocol for vector-similarity candidate lookup."""

    async def add(
        self,
        collection_id: str,
        ids: list[str],
        embeddings: list[list[float]],
        created_at: list[datetime],
    ) -> None:
        """Add fragment vectors to a collection.

        Args:
            collection_id: Collection ID.
            ids: Fragment IDs.
            embeddings: Fragment embeddings.
            created_at: Fragment creation timestamps.
        """
        ...

    async def vector_candidates(
        self,
        collection_id: str,
        query_vector: list[float],
        k: int,
    ) -> list[Candidate]:
        """Search by embedding.

        Args:
            collection_id: Collection ID.
            query_vector: Query vector.
            k: Candidate pool size.

        Returns:
            Up to k candidates ranked by similarity.
        """
        ...

    async def embedded_ids(self, collection_id: str) -> set[str]:
        """Get IDs of fragments that already have a vector."""
        ...
