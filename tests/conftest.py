"""Shared fakes and fixtures."""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import pytest

from hybrid_search.core.errors import ProviderError
from hybrid_search.core.models.chat import ChatMessage, RewriteResult
from hybrid_search.core.models.document import Fragment
from hybrid_search.core.services.candidate_service import CandidateRetriever
from hybrid_search.core.services.chunker import Chunker
from hybrid_search.core.services.ingest_service import IngestService
from hybrid_search.core.services.search_service import SearchService
from hybrid_search.infrastructure.lexical.bm25_index import BM25LexicalIndex
from hybrid_search.infrastructure.storage.config_store import InMemoryConfigStore
from hybrid_search.infrastructure.storage.fragment_store import InMemoryFragmentStore
from hybrid_search.infrastructure.vector_stores.memory_store import InMemoryVectorIndex

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)

VOCABULARY = ["kyc", "refund", "points", "credited", "password", "router", "invoice"]


class KeywordEmbedder:
    """Counts vocabulary words, so similar wording gives similar vectors."""

    def __init__(self, vocabulary: list[str] = VOCABULARY):
        self.vocabulary = vocabulary
        self.calls: list[list[str]] = []
        self.input_types: list[str] = []

    @property
    def model_name(self) -> str:
        return "keyword-fake"

    async def embed(self, texts: list[str], input_type: str = "passage") -> list[list[float]]:
        self.calls.append(list(texts))
        self.input_types.append(input_type)
        return [[float(t.lower().count(w)) for w in self.vocabulary] for t in texts]


class FailingEmbedder:
    def __init__(self):
        self.calls = 0

    @property
    def model_name(self) -> str:
        return "failing-fake"

    async def embed(self, texts: list[str], input_type: str = "passage") -> list[list[float]]:
        self.calls += 1
        raise ProviderError("embedding backend down")


class SlowEmbedder:
    def __init__(self, delay: float = 1.0):
        self.delay = delay
        self.cancelled = False

    @property
    def model_name(self) -> str:
        return "slow-fake"

    async def embed(self, texts: list[str], input_type: str = "passage") -> list[list[float]]:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return [[1.0] for _ in texts]


class FakeLLM:
    """Returns a canned completion and records every call."""

    def __init__(self, reply: str = "", name: str = "fake-rewriter"):
        self.reply = reply
        self.name = name
        self.calls: list[dict] = []

    @property
    def model(self) -> str:
        return self.name

    async def complete(self, system_prompt, user_message, max_tokens=60, temperature=0.0):
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_message": user_message,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        return self.reply


class FailingLLM(FakeLLM):
    async def complete(self, system_prompt, user_message, max_tokens=60, temperature=0.0):
        self.calls.append({"user_message": user_message})
        raise ProviderError("llm unavailable")


class SlowLLM(FakeLLM):
    async def complete(self, system_prompt, user_message, max_tokens=60, temperature=0.0):
        await asyncio.sleep(1)
        return "too late"


class ListRewriteLog:
    def __init__(self):
        self.records: list[tuple[RewriteResult, Optional[str]]] = []

    def record(self, result: RewriteResult, session_id: Optional[str] = None) -> None:
        self.records.append((result, session_id))


def turns(*pairs: tuple[str, str]) -> list[ChatMessage]:
    return [ChatMessage(role=role, content=content) for role, content in pairs]


def stored_fragment(fragment_id: str, content: str, created_at: datetime = NOW) -> Fragment:
    return Fragment(
        content=content,
        token_count=len(content) // 4,
        heading_path=[],
        char_start=0,
        char_end=len(content),
        id=fragment_id,
        document_id="doc-1",
        created_at=created_at,
    )


@dataclass
class Stack:
    """In-process wiring of the search core."""
    config_store: InMemoryConfigStore
    fragment_store: InMemoryFragmentStore
    vector_index: InMemoryVectorIndex
    lexical_index: BM25LexicalIndex
    retriever: CandidateRetriever
    search: SearchService
    ingest: IngestService


def build_stack(embedder=None, embed_timeout: float = 1.0, **defaults) -> Stack:
    config_store = InMemoryConfigStore(defaults)
    fragment_store = InMemoryFragmentStore()
    vector_index = InMemoryVectorIndex()
    lexical_index = BM25LexicalIndex()
    retriever = CandidateRetriever(
        embedder=embedder,
        vector_index=vector_index,
        lexical_index=lexical_index,
        embed_timeout=embed_timeout,
        index_timeout=1.0,
        retries=0,
    )
    return Stack(
        config_store=config_store,
        fragment_store=fragment_store,
        vector_index=vector_index,
        lexical_index=lexical_index,
        retriever=retriever,
        search=SearchService(retriever, config_store, fragment_store),
        ingest=IngestService(
            chunker=Chunker(),
            fragment_store=fragment_store,
            lexical_index=lexical_index,
            vector_index=vector_index,
            embedder=embedder,
            batch_size=2,
            embed_timeout=embed_timeout,
            retries=0,
        ),
    )


@pytest.fixture
def stack() -> Stack:
    return build_stack(embedder=KeywordEmbedder())


@pytest.fixture
def lexical_stack() -> Stack:
    return build_stack(embedder=None)
