"""Tests for the reference lexical and vector indexes."""
import asyncio
from datetime import timedelta

import pytest
import requests

from hybrid_search.core.errors import RetrievalBackendError
from hybrid_search.infrastructure.lexical.bm25_index import BM25LexicalIndex, tokenize
from hybrid_search.infrastructure.vector_stores import chroma_store
from hybrid_search.infrastructure.vector_stores.chroma_store import ChromaVectorIndex
from hybrid_search.infrastructure.vector_stores.memory_store import InMemoryVectorIndex

from conftest import NOW, stored_fragment


class TestTokenize:
    def test_lowercases_and_drops_stopwords(self):
        assert tokenize("How do I reset THE Router?") == ["reset", "router"]

    def test_keeps_stopwords_when_asked(self):
        assert "the" in tokenize("the router", remove_stopwords=False)

    def test_drops_single_characters(self):
        assert tokenize("a b c router 5") == ["router"]


class TestBM25LexicalIndex:
    """Strict AND and relaxed OR matching."""

    @pytest.fixture
    def index(self):
        index = BM25LexicalIndex()
        asyncio.run(
            index.add(
                "c1",
                [
                    stored_fragment("f1", "Reward points are added monthly."),
                    stored_fragment("f2", "Refunds are credited within a week."),
                    stored_fragment("f3", "Reward points can be credited early."),
                ],
            )
        )
        return index

    def test_strict_requires_every_term(self, index):
        hits = asyncio.run(index.lexical_candidates("c1", "points credited", k=10))
        assert [h.fragment_id for h in hits] == ["f3"]

    def test_relaxed_accepts_any_term(self, index):
        hits = asyncio.run(
            index.lexical_candidates("c1", "refunds monthly", k=10, relaxed=True)
        )
        assert {h.fragment_id for h in hits} == {"f1", "f2"}
        assert all(h.score > 0 for h in hits)

    def test_relaxed_ranks_more_matching_terms_higher(self, index):
        hits = asyncio.run(
            index.lexical_candidates("c1", "points credited", k=10, relaxed=True)
        )
        assert hits[0].fragment_id == "f3"
        assert len(hits) == 3

    def test_k_limits_results(self, index):
        hits = asyncio.run(index.lexical_candidates("c1", "reward", k=1))
        assert len(hits) == 1

    def test_stopword_only_query(self, index):
        assert asyncio.run(index.lexical_candidates("c1", "how are the", k=10)) == []

    def test_unknown_collection(self, index):
        assert asyncio.run(index.lexical_candidates("nope", "points", k=10)) == []

    def test_unstored_fragment_rejected(self):
        fragment = stored_fragment("f1", "text here")
        fragment.id = None
        with pytest.raises(ValueError):
            asyncio.run(BM25LexicalIndex().add("c1", [fragment]))


class TestInMemoryVectorIndex:
    """Cosine similarity lookup."""

    def test_orders_by_similarity(self):
        index = InMemoryVectorIndex()
        asyncio.run(
            index.add(
                "c1",
                ids=["a", "b", "c"],
                embeddings=[[1.0, 0.0], [0.7, 0.7], [0.0, 1.0]],
                created_at=[NOW, NOW - timedelta(days=1), NOW],
            )
        )

        hits = asyncio.run(index.vector_candidates("c1", [1.0, 0.1], k=2))

        assert [h.fragment_id for h in hits] == ["a", "b"]
        assert hits[0].score == pytest.approx(0.995, abs=1e-3)
        assert hits[1].created_at == NOW - timedelta(days=1)

    def test_zero_vectors_do_not_divide_by_zero(self):
        index = InMemoryVectorIndex()
        asyncio.run(index.add("c1", ["a"], [[0.0, 0.0]], [NOW]))

        hits = asyncio.run(index.vector_candidates("c1", [1.0, 0.0], k=5))

        assert hits[0].score == 0.0

    def test_embedded_ids(self):
        index = InMemoryVectorIndex()
        asyncio.run(index.add("c1", ["a", "b"], [[1.0], [2.0]], [NOW, NOW]))

        assert asyncio.run(index.embedded_ids("c1")) == {"a", "b"}
        assert asyncio.run(index.embedded_ids("c2")) == set()
        assert asyncio.run(index.vector_candidates("c2", [1.0], k=3)) == []


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeChroma:
    """Answers the Chroma HTTP routes the index uses and records posts."""

    def __init__(self, collections=None, query_payload=None):
        self.collections = collections if collections is not None else []
        self.query_payload = query_payload or {}
        self.posts: list[tuple[str, dict]] = []

    def get(self, url, timeout=None):
        return FakeResponse(self.collections)

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json))
        if url.endswith("/collections"):
            return FakeResponse({"id": "col-new"})
        if url.endswith("/query"):
            return FakeResponse(self.query_payload)
        if url.endswith("/get"):
            return FakeResponse({"ids": ["a", "b"]})
        return FakeResponse({})


class TestChromaVectorIndex:
    """HTTP adapter with a stubbed transport."""

    @pytest.fixture
    def chroma(self, monkeypatch):
        def install(fake: FakeChroma) -> ChromaVectorIndex:
            monkeypatch.setattr(chroma_store.requests, "get", fake.get)
            monkeypatch.setattr(chroma_store.requests, "post", fake.post)
            return ChromaVectorIndex(collection_prefix="fragments_")

        return install

    def test_query_converts_distance_to_score(self, chroma):
        fake = FakeChroma(
            collections=[{"name": "fragments_c1", "id": "col-1"}],
            query_payload={
                "ids": [["a", "b"]],
                "distances": [[0.1, 0.4]],
                "metadatas": [[{"created_at": NOW.isoformat()}, None]],
            },
        )
        index = chroma(fake)

        hits = asyncio.run(index.vector_candidates("c1", [1.0, 0.0], k=2))

        assert [h.fragment_id for h in hits] == ["a", "b"]
        assert hits[0].score == pytest.approx(0.9)
        assert hits[1].score == pytest.approx(0.6)
        assert hits[0].created_at == NOW
        assert hits[1].created_at.tzinfo is not None
        url, body = fake.posts[0]
        assert url.endswith("/collections/col-1/query")
        assert body["n_results"] == 2

    def test_empty_query_result(self, chroma):
        index = chroma(
            FakeChroma(
                collections=[{"name": "fragments_c1", "id": "col-1"}],
                query_payload={"ids": [[]], "distances": [[]], "metadatas": [[]]},
            )
        )
        assert asyncio.run(index.vector_candidates("c1", [1.0], k=5)) == []

    def test_add_creates_collection_and_stores_created_at(self, chroma):
        fake = FakeChroma()
        index = chroma(fake)

        asyncio.run(index.add("c1", ["a"], [[1.0, 0.0]], [NOW]))

        create_url, create_body = fake.posts[0]
        assert create_url.endswith("/collections")
        assert create_body["name"] == "fragments_c1"
        assert create_body["metadata"] == {"hnsw:space": "cosine"}
        add_url, add_body = fake.posts[1]
        assert add_url.endswith("/collections/col-new/add")
        assert add_body["metadatas"] == [{"created_at": NOW.isoformat()}]

    def test_embedded_ids(self, chroma):
        index = chroma(FakeChroma(collections=[{"name": "fragments_c1", "id": "col-1"}]))
        assert asyncio.run(index.embedded_ids("c1")) == {"a", "b"}

    def test_transport_error_becomes_backend_error(self, chroma, monkeypatch):
        index = chroma(FakeChroma(collections=[{"name": "fragments_c1", "id": "col-1"}]))

        def refuse(*args, **kwargs):
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(chroma_store.requests, "post", refuse)

        with pytest.raises(RetrievalBackendError) as exc_info:
            asyncio.run(index.vector_candidates("c1", [1.0], k=5))
        assert exc_info.value.channel == "vector"

    def test_http_error_becomes_backend_error(self, chroma, monkeypatch):
        index = chroma(FakeChroma(collections=[{"name": "fragments_c1", "id": "col-1"}]))
        monkeypatch.setattr(
            chroma_store.requests, "post", lambda *a, **kw: FakeResponse({}, status_code=500)
        )

        with pytest.raises(RetrievalBackendError):
            asyncio.run(index.add("c1", ["a"], [[1.0]], [NOW]))
