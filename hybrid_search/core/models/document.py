"""Document domain models."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass
class Document:
    """Source document a set of fragments was cut from."""
    id: str
    collection_id: str
    title: str
    content_hash: str
    source_type: str = "paste"
    source_ref: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass
class Fragment:
    """Bounded slice of a document, the unit of retrieval."""
    content: str
    token_count: int
    heading_path: list[str]
    char_start: int
    char_end: int
    chunk_index: int = 0
    id: Optional[str] = None
    document_id: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def meta(self) -> dict[str, Any]:
        """Metadata stored alongside the fragment."""
        return {
            "heading_path": list(self.heading_path),
            "approx_char_start": self.char_start,
            "approx_char_end": self.char_end,
        }


@dataclass
class FragmentDetail:
    """Hydrated fragment content for a ranked result."""
    fragment_id: str
    content: str
    meta: dict[str, Any] = field(default_factory=dict)
    document_title: str = "Unknown"
    document_ref: Optional[str] = None


@dataclass
class Candidate:
    """Fragment with a raw score from one retrieval channel."""
    fragment_id: str
    score: float
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "fragment_id": self.fragment_id,
            "score": self.score,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class MergedCandidate:
    """Union of a fragment's vector and/or lexical candidate."""
    fragment_id: str
    created_at: datetime
    vector: Optional[Candidate] = None
    lexical: Optional[Candidate] = None

    @property
    def vector_score(self) -> float:
        return self.vector.score if self.vector is not None else 0.0

    @property
    def lexical_score(self) -> float:
        return self.lexical.score if self.lexical is not None else 0.0


@dataclass
class RankedResult:
    """Merged, scored and hydrated search result."""
    fragment_id: str
    final_score: float
    vec_score_norm: float
    text_score_norm: float
    content: str = ""
    meta: dict[str, Any] = field(default_factory=dict)
    document_title: str = "Unknown"
    document_ref: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChannelCandidates:
    """Raw per-channel candidates for one query."""
    vector: list[Candidate] = field(default_factory=list)
    lexical: list[Candidate] = field(default_factory=list)
    embedding_available: bool = False
    text_search_relaxed: bool = False
    timings: dict[str, float] = field(default_factory=dict)


@dataclass
class SearchDebug:
    """Observability data for a search call."""
    config: dict[str, Any]
    embedding_available: bool
    text_search_relaxed: bool
    counts: dict[str, int]
    raw_ranges: dict[str, float]
    vector_candidates: list[dict] = field(default_factory=list)
    lexical_candidates: list[dict] = field(default_factory=list)
    timings: dict[str, float] = field(default_factory=dict)
    notes: list[str] = field(default_factory=list)

    def add_note(self, note: str) -> None:
        self.notes.append(note)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class SearchResponse:
    """Search response for the answer generator."""
    results: list[RankedResult]
    insufficient_evidence: bool
    debug: Optional[SearchDebug] = None

    @property
    def top_fragment_id(self) -> Optional[str]:
        return self.results[0].fragment_id if self.results else None

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {
            "results": [r.to_dict() for r in self.results],
            "insufficient_evidence": self.insufficient_evidence,
        }
        if self.debug is not None:
            payload["debug"] = self.debug.to_dict()
        return payload
