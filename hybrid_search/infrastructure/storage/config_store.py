"""Retrieval config stores: get-or-create and partial update by collection ID."""

import json
import logging
import threading
from pathlib import Path
from typing import Any

from hybrid_search.core.models.config import RetrievalConfig

logger = logging.getLogger(__name__)

STORE_VERSION = 1


class InMemoryConfigStore:
    """Config store kept in process memory."""

    def __init__(self, defaults: dict[str, Any] | None = None):
        """Initialize store.

        Args:
            defaults: Field values for lazily created configs.
        """
        self._defaults = dict(defaults or {})
        self._configs: dict[str, RetrievalConfig] = {}
        self._lock = threading.Lock()

    def _default(self, collection_id: str) -> RetrievalConfig:
        return RetrievalConfig(collection_id=collection_id, **self._defaults)

    def get_or_create(self, collection_id: str) -> RetrievalConfig:
        with self._lock:
            config = self._configs.get(collection_id)
            if config is None:
                config = self._default(collection_id)
                self._configs[collection_id] = config
                try:
                    self._persist()
                except OSError as e:
                    logger.warning(
                        f"Could not persist default config for {collection_id}, "
                        f"keeping it in memory: {e}"
                    )
                logger.info(f"Created default retrieval config for {collection_id}")
            return config

    def update(self, collection_id: str, partial: dict[str, Any]) -> RetrievalConfig:
        current = self.get_or_create(collection_id)
        updated = current.with_updates(partial)
        with self._lock:
            self._configs[collection_id] = updated
            self._persist()
        logger.info(f"Updated retrieval config for {collection_id}: {sorted(partial)}")
        return updated

    def _persist(self) -> None:
        """Hook for durable subclasses. Called with the lock held."""


class JsonFileConfigStore(InMemoryConfigStore):
    """Config store persisted as a single JSON file."""

    def __init__(self, path: str | Path, defaults: dict[str, Any] | None = None):
        super().__init__(defaults)
        self._path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Config store {self._path} unreadable, starting empty: {e}")
            return

        for collection_id, raw in (data.get("configs") or {}).items():
            self._configs[collection_id] = RetrievalConfig.from_dict(
                {**raw, "collection_id": collection_id}
            )
        logger.info(f"Loaded {len(self._configs)} retrieval configs from {self._path}")

    def _persist(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": STORE_VERSION,
            "configs": {cid: cfg.to_dict() for cid, cfg in self._configs.items()},
        }
        with self._path.open("w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2)
