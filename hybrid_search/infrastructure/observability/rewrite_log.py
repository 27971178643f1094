"""Append-only JSONL log of query rewrites."""

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from hybrid_search.core.models.chat import RewriteResult

logger = logging.getLogger(__name__)


class JsonlRewriteLog:
    """Writes one JSON object per rewrite. Write failures never propagate."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def record(self, result: RewriteResult, session_id: Optional[str] = None) -> None:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "session_id": session_id,
            "original": result.original,
            "rewritten": result.rewritten,
            "was_rewritten": result.was_rewritten,
        }
        if result.model is not None:
            entry["model"] = result.model
        if result.latency_ms is not None:
            entry["latency_ms"] = result.latency_ms

        try:
            with self._lock:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as handle:
                    handle.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.warning(f"Rewrite log write failed ({self._path}): {e}")
