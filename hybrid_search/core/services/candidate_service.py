"""Candidate retrieval from the vector and lexical channels."""

import asyncio
import logging
import time
from typing import Optional

from ..errors import RetrievalBackendError
from ..models.config import RetrievalConfig
from ..models.document import Candidate, ChannelCandidates
from ..protocols.embedder import EmbedderProtocol
from ..protocols.lexical_index import LexicalIndexProtocol
from ..protocols.vector_store import VectorIndexProtocol
from ..resilience import call_with_deadline

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class CandidateRetriever:
    """Collects raw candidates from both channels for one query."""

    def __init__(
        self,
        embedder: Optional[EmbedderProtocol],
        vector_index: VectorIndexProtocol,
        lexical_index: LexicalIndexProtocol,
        embed_timeout: float = 10.0,
        index_timeout: float = 10.0,
        retries: int = 1,
    ):
        """Initialize retriever.

        Args:
            embedder: Embedding provider, or None when not configured.
            vector_index: Vector index.
            lexical_index: Lexical index.
            embed_timeout: Deadline per embedding attempt, seconds.
            index_timeout: Deadline per index lookup attempt, seconds.
            retries: Extra attempts after a failed call.
        """
        self._embedder = embedder
        self._vector_index = vector_index
        self._lexical_index = lexical_index
        self._embed_timeout = embed_timeout
        self._index_timeout = index_timeout
        self._retries = retries

    async def retrieve(
        self, collection_id: str, query: str, config: RetrievalConfig
    ) -> ChannelCandidates:
        """Fetch vector and lexical candidates concurrently.

        The lexical lookup starts right away, while the query is embedded
        and looked up in the vector index. The vector channel is skipped
        when no embedding is available. The lexical channel retries once
        with OR matching when strict matching finds nothing. When one
        channel fails the other is cancelled.

        Raises:
            RetrievalBackendError: An index lookup failed or timed out.
        """
        result = ChannelCandidates()

        async def vector_channel() -> list[Candidate]:
            started = time.perf_counter()
            query_vector = await self._embed_query(query)
            result.timings["embed_ms"] = _elapsed_ms(started)
            result.embedding_available = query_vector is not None
            if query_vector is None:
                return []
            t0 = time.perf_counter()
            candidates = await self._lookup(
                "vector",
                lambda: self._vector_index.vector_candidates(
                    collection_id, query_vector, config.vec_candidates
                ),
            )
            result.timings["vector_ms"] = _elapsed_ms(t0)
            return candidates

        async def lexical_channel() -> list[Candidate]:
            t0 = time.perf_counter()
            candidates = await self._lookup(
                "lexical",
                lambda: self._lexical_index.lexical_candidates(
                    collection_id, query, config.text_candidates, relaxed=False
                ),
            )
            if not candidates:
                candidates = await self._lookup(
                    "lexical",
                    lambda: self._lexical_index.lexical_candidates(
                        collection_id, query, config.text_candidates, relaxed=True
                    ),
                )
                result.text_search_relaxed = True
                logger.info(
                    f"Lexical: strict match empty, relaxed to OR "
                    f"({len(candidates)} hits) for '{query[:50]}'"
                )
            result.timings["lexical_ms"] = _elapsed_ms(t0)
            return candidates

        tasks = [
            asyncio.create_task(lexical_channel()),
            asyncio.create_task(vector_channel()),
        ]
        try:
            result.lexical, result.vector = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.info(
            f"Candidates for '{query[:50]}': vec={len(result.vector)} "
            f"text={len(result.lexical)} embedding={result.embedding_available}"
        )
        return result

    async def _embed_query(self, query: str) -> Optional[list[float]]:
        if self._embedder is None:
            logger.info("Embedding provider not configured, vector channel skipped")
            return None
        if not query.strip():
            return None

        try:
            vectors = await call_with_deadline(
                lambda: self._embedder.embed([query], input_type="query"),
                timeout=self._embed_timeout,
                retries=self._retries,
                label="embed",
            )
        except Exception as e:
            logger.warning(f"Query embedding failed, vector channel skipped: {e!r}")
            return None

        if not vectors:
            logger.warning("Embedding provider returned no vector, vector channel skipped")
            return None
        return vectors[0]

    async def _lookup(self, channel: str, factory) -> list[Candidate]:
        try:
            return await call_with_deadline(
                factory,
                timeout=self._index_timeout,
                retries=self._retries,
                label=f"{channel}-index",
            )
        except RetrievalBackendError:
            raise
        except asyncio.TimeoutError as e:
            raise RetrievalBackendError(
                channel, f"timed out after {self._index_timeout}s"
            ) from e
        except Exception as e:
            raise RetrievalBackendError(channel, str(e) or repr(e)) from e
