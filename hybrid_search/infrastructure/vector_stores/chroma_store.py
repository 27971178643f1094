import asyncio
import logging
from datetime import datetime, timezone

import requests

from hybrid_search.core.errors import RetrievalBackendError
from hybrid_search.core.models.document import Candidate

logger = logging.getLogger(__name__)


def _parse_timestamp(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    return datetime.fromisoformat(value)


class ChromaVectorIndex:
    """Vector index using ChromaDB HTTP API, one Chroma collection per collection ID."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        collection_prefix: str = "fragments_",
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 10.0,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            collection_prefix: Prefix for Chroma collection names.
            tenant: Tenant name.
            database: Database name.
            timeout: HTTP timeout in seconds.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._prefix = collection_prefix
        self._timeout = timeout
        self._collection_ids: dict[str, str] = {}

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    def _ensure_collection(self, collection_id: str) -> str:
        """Get or create Chroma collection, return its ID."""
        if collection_id in self._collection_ids:
            return self._collection_ids[collection_id]

        name = f"{self._prefix}{collection_id}"
        resp = requests.get(self._collections_url, timeout=self._timeout)
        if resp.status_code == 200:
            for col in resp.json():
                if col["name"] == name:
                    self._collection_ids[collection_id] = col["id"]
                    return col["id"]

        resp = requests.post(
            self._collections_url,
            json={"name": name, "metadata": {"hnsw:space": "cosine"}},
            timeout=self._timeout,
        )
        resp.raise_for_status()
        self._collection_ids[collection_id] = resp.json()["id"]
        logger.info(f"Created collection: {name}")
        return self._collection_ids[collection_id]

    def _add(
        self,
        collection_id: str,
        ids: list[str],
        embeddings: list[list[float]],
        created_at: list[datetime],
    ) -> None:
        col_id = self._ensure_collection(collection_id)
        resp = requests.post(
            f"{self._collections_url}/{col_id}/add",
            json={
                "ids": ids,
                "embeddings": embeddings,
                "metadatas": [{"created_at": ts.isoformat()} for ts in created_at],
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()

    def _query(
        self, collection_id: str, query_vector: list[float], k: int
    ) -> list[Candidate]:
        col_id = self._ensure_collection(collection_id)
        resp = requests.post(
            f"{self._collections_url}/{col_id}/query",
            json={
                "query_embeddings": [query_vector],
                "n_results": k,
                "include": ["metadatas", "distances"],
            },
            timeout=self._timeout,
        )
        resp.raise_for_status()

        data = resp.json()
        candidates = []

        if data.get("ids") and data["ids"][0]:
            for i, fragment_id in enumerate(data["ids"][0]):
                distance = data["distances"][0][i]
                meta = data["metadatas"][0][i] or {}
                candidates.append(
                    Candidate(
                        fragment_id=fragment_id,
                        score=1.0 - distance,
                        created_at=_parse_timestamp(meta.get("created_at")),
                    )
                )

        return candidates

    def _ids(self, collection_id: str) -> set[str]:
        col_id = self._ensure_collection(collection_id)
        resp = requests.post(
            f"{self._collections_url}/{col_id}/get",
            json={"include": []},
            timeout=self._timeout,
        )
        resp.raise_for_status()
        return set(resp.json().get("ids", []))

    async def add(
        self,
        collection_id: str,
        ids: list[str],
        embeddings: list[list[float]],
        created_at: list[datetime],
    ) -> None:
        try:
            await asyncio.to_thread(self._add, collection_id, ids, embeddings, created_at)
        except requests.RequestException as e:
            raise RetrievalBackendError("vector", str(e)) from e

    async def vector_candidates(
        self, collection_id: str, query_vector: list[float], k: int
    ) -> list[Candidate]:
        try:
            return await asyncio.to_thread(self._query, collection_id, query_vector, k)
        except requests.RequestException as e:
            raise RetrievalBackendError("vector", str(e)) from e

    async def embedded_ids(self, collection_id: str) -> set[str]:
        try:
            return await asyncio.to_thread(self._ids, collection_id)
        except requests.RequestException as e:
            raise RetrievalBackendError("vector", str(e)) from e
