"""Ingestion and diagnostics models."""
from dataclasses import asdict, dataclass, field


@dataclass
class IngestResult:
    document_id: str
    fragment_count: int
    embedded: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BackfillResult:
    """Outcome of embedding fragments that had no vector yet."""
    generated: int
    total: int
    skipped: int

    @property
    def message(self) -> str:
        if self.generated == 0:
            return "All fragments already have embeddings, nothing to do"
        return f"Generated embeddings for {self.generated} fragments"

    def to_dict(self) -> dict:
        return {"message": self.message, **asdict(self)}


@dataclass
class TermHit:
    fragment_id: str
    title: str
    chunk_index: int
    snippet: str = ""


@dataclass
class TermReport:
    """Which fragments of a collection contain which terms."""
    collection_id: str
    terms: list[str]
    by_term: dict[str, list[TermHit]] = field(default_factory=dict)
    containing_all: list[TermHit] = field(default_factory=list)

    @property
    def summary(self) -> dict:
        return {
            "with_all_count": len(self.containing_all),
            "per_term": {t: len(self.by_term.get(t, [])) for t in self.terms},
        }

    def to_dict(self) -> dict:
        return {
            "collection_id": self.collection_id,
            "terms": list(self.terms),
            "by_term": {t: [asdict(h) for h in hits] for t, hits in self.by_term.items()},
            "containing_all": [
                {k: v for k, v in asdict(h).items() if k != "snippet"}
                for h in self.containing_all
            ],
            "summary": self.summary,
        }
