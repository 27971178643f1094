"""Ingest service - pasted text indexing, embedding backfill, term diagnostics."""

import hashlib
import logging
import uuid
from typing import Optional

from ..errors import ProviderError
from ..models.document import Document, Fragment
from ..models.ingest import BackfillResult, IngestResult, TermHit, TermReport
from ..protocols.embedder import EmbedderProtocol
from ..protocols.lexical_index import LexicalIndexProtocol
from ..protocols.stores import FragmentStoreProtocol
from ..protocols.vector_store import VectorIndexProtocol
from ..resilience import call_with_deadline
from .chunker import Chunker

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS = 20
SNIPPET_CONTEXT_CHARS = 60


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def snippet(content: str, term: str, context_chars: int = SNIPPET_CONTEXT_CHARS) -> str:
    """Text around the first case-insensitive occurrence of ``term``."""
    if not content:
        return ""
    index = content.lower().find(term.lower())
    if index < 0:
        return content[:80] + "..."
    start = max(0, index - context_chars)
    end = min(len(content), index + len(term) + context_chars)
    prefix = "..." if start > 0 else ""
    suffix = "..." if end < len(content) else ""
    return f"{prefix}{content[start:end]}{suffix}"


class IngestService:
    """Service for indexing pasted text into both retrieval channels."""

    def __init__(
        self,
        chunker: Chunker,
        fragment_store: FragmentStoreProtocol,
        lexical_index: LexicalIndexProtocol,
        vector_index: VectorIndexProtocol,
        embedder: Optional[EmbedderProtocol] = None,
        batch_size: int = 20,
        embed_timeout: float = 10.0,
        retries: int = 1,
    ):
        """Initialize ingest service.

        Args:
            chunker: Text chunker.
            fragment_store: Document and fragment storage.
            lexical_index: Lexical index.
            vector_index: Vector index.
            embedder: Embedding provider, or None when not configured.
            batch_size: Fragments per embedding request.
            embed_timeout: Deadline per embedding attempt, seconds.
            retries: Extra attempts after a failed embedding call.
        """
        self._chunker = chunker
        self._fragment_store = fragment_store
        self._lexical_index = lexical_index
        self._vector_index = vector_index
        self._embedder = embedder
        self._batch_size = max(1, batch_size)
        self._embed_timeout = embed_timeout
        self._retries = retries

    async def ingest_text(
        self,
        collection_id: str,
        title: str,
        text: str,
        source_type: str = "paste",
        source_ref: str = "pasted-text",
    ) -> IngestResult:
        """Chunk, store and index a pasted document.

        Embedding failures are logged and leave the fragments lexical-only;
        ``backfill_embeddings`` can fill them in later.

        Raises:
            ValueError: Empty title or text shorter than 20 characters.
        """
        if not title.strip():
            raise ValueError("title must not be empty")
        if len(text) < MIN_TEXT_CHARS:
            raise ValueError(f"text must be at least {MIN_TEXT_CHARS} characters")

        document = Document(
            id=str(uuid.uuid4()),
            collection_id=collection_id,
            title=title.strip(),
            content_hash=content_hash(text),
            source_type=source_type,
            source_ref=source_ref,
        )
        fragments = self._chunker.chunk(text)
        stored = await self._fragment_store.add_document(document, fragments)
        await self._lexical_index.add(collection_id, stored)

        embedded = False
        if self._embedder is not None and stored:
            try:
                await self._embed_and_index(collection_id, stored)
                embedded = True
            except Exception as e:
                logger.warning(
                    f"Embedding skipped for document {document.id}, "
                    f"fragments are lexical-only: {e!r}"
                )

        logger.info(
            f"Ingested '{document.title}' into {collection_id}: "
            f"{len(stored)} fragments, embedded={embedded}"
        )
        return IngestResult(
            document_id=document.id, fragment_count=len(stored), embedded=embedded
        )

    async def backfill_embeddings(self, collection_id: str) -> BackfillResult:
        """Embed every fragment of a collection that has no vector yet.

        Raises:
            ProviderError: No embedding provider configured, or a batch failed.
        """
        if self._embedder is None:
            raise ProviderError("No embedding provider configured, cannot backfill")

        fragments = await self._fragment_store.list_fragments(collection_id)
        existing = await self._vector_index.embedded_ids(collection_id)
        pending = [f for f in fragments if f.id not in existing]

        logger.info(
            f"Backfill {collection_id}: total={len(fragments)} "
            f"embedded={len(existing)} pending={len(pending)}"
        )
        if pending:
            await self._embed_and_index(collection_id, pending)
            logger.info(f"Backfill {collection_id}: generated {len(pending)} embeddings")

        return BackfillResult(
            generated=len(pending), total=len(fragments), skipped=len(existing)
        )

    async def term_report(self, collection_id: str, terms: list[str]) -> TermReport:
        """Report which fragments contain which terms (case-insensitive substring).

        Raises:
            ValueError: No non-empty term given.
        """
        terms = [t.strip() for t in terms if t.strip()]
        if not terms:
            raise ValueError("at least one term is required")

        report = TermReport(
            collection_id=collection_id,
            terms=terms,
            by_term={t: [] for t in terms},
        )
        titles: dict[str, str] = {}

        for fragment in await self._fragment_store.list_fragments(collection_id):
            title = await self._document_title(fragment.document_id, titles)
            lowered = fragment.content.lower()
            has_all = True
            for term in terms:
                if term.lower() in lowered:
                    report.by_term[term].append(
                        TermHit(
                            fragment_id=fragment.id or "",
                            title=title,
                            chunk_index=fragment.chunk_index,
                            snippet=snippet(fragment.content, term),
                        )
                    )
                else:
                    has_all = False
            if has_all:
                report.containing_all.append(
                    TermHit(
                        fragment_id=fragment.id or "",
                        title=title,
                        chunk_index=fragment.chunk_index,
                    )
                )

        return report

    async def _document_title(self, document_id: Optional[str], cache: dict[str, str]) -> str:
        if document_id is None:
            return "Unknown"
        if document_id not in cache:
            document = await self._fragment_store.get_document(document_id)
            cache[document_id] = document.title if document else "Unknown"
        return cache[document_id]

    async def _embed_and_index(self, collection_id: str, fragments: list[Fragment]) -> None:
        for i in range(0, len(fragments), self._batch_size):
            batch = fragments[i : i + self._batch_size]
            vectors = await call_with_deadline(
                lambda: self._embedder.embed(
                    [f.content for f in batch], input_type="passage"
                ),
                timeout=self._embed_timeout,
                retries=self._retries,
                label="embed",
            )
            if len(vectors) != len(batch):
                raise ProviderError(
                    f"Expected {len(batch)} embeddings, got {len(vectors)}"
                )
            await self._vector_index.add(
                collection_id,
                ids=[f.id for f in batch],
                embeddings=vectors,
                created_at=[f.created_at for f in batch],
            )
            logger.debug(f"Embedded batch {i + len(batch)}/{len(fragments)}")
