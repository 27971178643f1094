"""Lexical index protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import Candidate, Fragment


@runtime_checkable
class LexicalIndexProtocol(Protocol):
    """Protocol for keyword-relevance candidate lookup."""

    async def add(self, collection_id: str, fragments: list[Fragment]) -> None:
        """Index fragments. Each fragment must carry id and created_at."""
        ...

    async def lexical_candidates(
        self,
        collection_id: str,
        query_text: str,
        k: int,
        relaxed: bool = False,
    ) -> list[Candidate]:
        """Keyword search.

        Args:
            collection_id: Collection ID.
            query_text: Raw query text.
            k: Candidate pool size.
            relaxed: Match any query term (OR) instead of all (AND).

        Returns:
            Up to k candidates ranked by keyword relevance.
        """
        ...
