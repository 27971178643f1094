"""Retrieval config domain model."""
from dataclasses import dataclass, field, fields, replace
from datetime import datetime, timezone
from typing import Any, Optional

from ..errors import ConfigValidationError

# Fields an explicit update may change, with their (type, min, max) bounds.
_BOUNDS: dict[str, tuple[type, Optional[float], Optional[float]]] = {
    "w_vec": (float, 0.0, 1.0),
    "w_text": (float, 0.0, 1.0),
    "top_k": (int, 1, 50),
    "vec_candidates": (int, 1, 200),
    "text_candidates": (int, 1, 200),
    "recency_boost": (bool, None, None),
    "recency_lambda": (float, 0.0, None),
    "min_score": (float, 0.0, None),
}

_EXTENSION_FIELDS = ("system_prompt", "answer_model")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RetrievalConfig:
    """Per-collection retrieval tunables.

    Core fields are always present. Extension fields are optional and
    persisted independently; ``None`` means "not set".
    """
    collection_id: str
    w_vec: float = 0.7
    w_text: float = 0.3
    top_k: int = 8
    vec_candidates: int = 30
    text_candidates: int = 30
    recency_boost: bool = False
    recency_lambda: float = 0.02
    min_score: float = 0.15
    updated_at: datetime = field(default_factory=_now)
    system_prompt: Optional[str] = None
    answer_model: Optional[str] = None

    def with_updates(self, partial: dict[str, Any]) -> "RetrievalConfig":
        """Return a copy with validated partial updates applied.

        Raises:
            ConfigValidationError: Unknown field or value out of range.
        """
        changes = validate_partial(partial)
        return replace(self, **changes, updated_at=_now())

    def to_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RetrievalConfig":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        updated_at = values.get("updated_at")
        if isinstance(updated_at, str):
            values["updated_at"] = datetime.fromisoformat(updated_at)
        return cls(**values)


def validate_partial(partial: dict[str, Any]) -> dict[str, Any]:
    """Validate and coerce a partial config update.

    Args:
        partial: Field name -> new value.

    Returns:
        Coerced changes.

    Raises:
        ConfigValidationError: Unknown field or value out of range.
    """
    changes: dict[str, Any] = {}
    for name, value in partial.items():
        if name in _EXTENSION_FIELDS:
            changes[name] = None if value in (None, "") else str(value)
            continue

        if name not in _BOUNDS:
            raise ConfigValidationError(f"Unknown config field: {name}")

        kind, low, high = _BOUNDS[name]
        if kind is bool:
            if not isinstance(value, bool):
                raise ConfigValidationError(f"{name} must be a boolean")
            changes[name] = value
            continue

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigValidationError(f"{name} must be a number")
        if kind is int and float(value) != int(value):
            raise ConfigValidationError(f"{name} must be an integer")

        coerced = kind(value)
        if low is not None and coerced < low:
            raise ConfigValidationError(f"{name} must be >= {low}")
        if high is not None and coerced > high:
            raise ConfigValidationError(f"{name} must be <= {high}")
        changes[name] = coerced

    return changes
