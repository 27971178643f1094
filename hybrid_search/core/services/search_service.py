"""Search service - hybrid retrieval for one query."""

import logging
import time
from datetime import datetime
from typing import Optional

from ..models.document import RankedResult, SearchDebug, SearchResponse
from ..protocols.stores import ConfigStoreProtocol, FragmentStoreProtocol
from .candidate_service import CandidateRetriever
from .ranking_service import is_insufficient, rank

logger = logging.getLogger(__name__)


class SearchService:
    """Hybrid search: candidates, merge, hydration and evidence gate."""

    def __init__(
        self,
        retriever: CandidateRetriever,
        config_store: ConfigStoreProtocol,
        fragment_store: FragmentStoreProtocol,
    ):
        """Initialize search service.

        Args:
            retriever: Per-channel candidate retriever.
            config_store: Per-collection retrieval config.
            fragment_store: Fragment hydration source.
        """
        self._retriever = retriever
        self._config_store = config_store
        self._fragment_store = fragment_store

    async def search(
        self,
        collection_id: str,
        query: str,
        debug: bool = False,
        now: Optional[datetime] = None,
    ) -> SearchResponse:
        """Search a collection.

        Args:
            collection_id: Collection to search.
            query: Retrieval query.
            debug: Attach per-channel candidates and effective config.
            now: Reference time for the recency boost.

        Returns:
            Ranked, hydrated results with the insufficient-evidence flag.

        Raises:
            RetrievalBackendError: An index lookup failed.
        """
        config = self._config_store.get_or_create(collection_id)
        channels = await self._retriever.retrieve(collection_id, query, config)
        outcome = rank(channels.vector, channels.lexical, config, now=now)

        started = time.perf_counter()
        results = await self._hydrate(outcome.ranked)
        hydrate_ms = round((time.perf_counter() - started) * 1000, 2)

        insufficient = is_insufficient(results, config.min_score)
        top = results[0].final_score if results else 0.0
        logger.info(
            f"Search {collection_id}: {len(results)}/{config.top_k} results, "
            f"top={top:.3f}, insufficient={insufficient} for '{query[:50]}'"
        )

        debug_info = None
        if debug:
            debug_info = SearchDebug(
                config=config.to_dict(),
                embedding_available=channels.embedding_available,
                text_search_relaxed=channels.text_search_relaxed,
                counts={
                    "vec": len(channels.vector),
                    "text": len(channels.lexical),
                    "merged": outcome.merged_count,
                },
                raw_ranges=outcome.raw_ranges,
                vector_candidates=[c.to_dict() for c in channels.vector],
                lexical_candidates=[c.to_dict() for c in channels.lexical],
                timings={**channels.timings, "hydrate_ms": hydrate_ms},
            )
            if not channels.embedding_available:
                debug_info.add_note("vector channel unavailable")
            if channels.text_search_relaxed:
                debug_info.add_note("lexical strict match empty, relaxed to OR")

        return SearchResponse(
            results=results, insufficient_evidence=insufficient, debug=debug_info
        )

    async def _hydrate(self, ranked: list[RankedResult]) -> list[RankedResult]:
        """Attach content and document info to the top results only."""
        if not ranked:
            return []

        details = await self._fragment_store.fetch_fragment_details(
            [r.fragment_id for r in ranked]
        )
        by_id = {d.fragment_id: d for d in details}

        for result in ranked:
            detail = by_id.get(result.fragment_id)
            if detail is None:
                logger.warning(f"Fragment {result.fragment_id} missing at hydration")
                continue
            result.content = detail.content
            result.meta = dict(detail.meta)
            result.document_title = detail.document_title or "Unknown"
            result.document_ref = detail.document_ref
        return ranked
