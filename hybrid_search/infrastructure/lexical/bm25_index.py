"""BM25 lexical index with strict (AND) and relaxed (OR) term matching."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from rank_bm25 import BM25Plus

from hybrid_search.core.models.document import Candidate, Fragment

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")

STOPWORDS = {
    "a", "about", "also", "am", "an", "and", "any", "are", "as", "at", "be",
    "but", "by", "can", "could", "do", "does", "for", "from", "has", "have",
    "how", "i", "if", "in", "is", "it", "its", "me", "my", "of", "on", "or",
    "our", "please", "should", "so", "that", "the", "their", "then", "there",
    "these", "this", "to", "was", "we", "what", "when", "where", "which",
    "who", "why", "will", "with", "would", "you", "your",
}


def tokenize(text: str, remove_stopwords: bool = True) -> list[str]:
    """Lowercase word tokens, without 1-char tokens and (optionally) stopwords."""
    tokens = [t for t in _TOKEN_RE.findall(text.lower()) if len(t) > 1]
    if remove_stopwords:
        tokens = [t for t in tokens if t not in STOPWORDS]
    return tokens


@dataclass
class _CollectionIndex:
    ids: list[str] = field(default_factory=list)
    created_at: list[datetime] = field(default_factory=list)
    corpus: list[list[str]] = field(default_factory=list)
    token_sets: list[set[str]] = field(default_factory=list)
    bm25: Optional[BM25Plus] = None

    def rebuild(self) -> None:
        # BM25Plus keeps scores of matching fragments positive on tiny corpora.
        self.bm25 = BM25Plus(self.corpus) if self.corpus else None


class BM25LexicalIndex:
    """In-process BM25 index, one corpus per collection."""

    def __init__(self):
        self._collections: dict[str, _CollectionIndex] = {}

    async def add(self, collection_id: str, fragments: list[Fragment]) -> None:
        index = self._collections.setdefault(collection_id, _CollectionIndex())
        for fragment in fragments:
            if fragment.id is None or fragment.created_at is None:
                raise ValueError("Fragments must be stored before indexing")
            tokens = tokenize(fragment.content)
            index.ids.append(fragment.id)
            index.created_at.append(fragment.created_at)
            index.corpus.append(tokens)
            index.token_sets.append(set(tokens))
        index.rebuild()
        logger.debug(f"BM25 {collection_id}: {len(index.ids)} fragments indexed")

    async def lexical_candidates(
        self,
        collection_id: str,
        query_text: str,
        k: int,
        relaxed: bool = False,
    ) -> list[Candidate]:
        index = self._collections.get(collection_id)
        if index is None or index.bm25 is None:
            return []

        query_tokens = list(dict.fromkeys(tokenize(query_text)))
        if not query_tokens:
            return []

        terms = set(query_tokens)
        if relaxed:
            matches = [i for i, toks in enumerate(index.token_sets) if toks & terms]
        else:
            matches = [i for i, toks in enumerate(index.token_sets) if terms <= toks]

        if not matches:
            return []

        scores = index.bm25.get_scores(query_tokens)
        matches.sort(key=lambda i: scores[i], reverse=True)

        return [
            Candidate(
                fragment_id=index.ids[i],
                score=float(scores[i]),
                created_at=index.created_at[i],
            )
            for i in matches[:k]
        ]
