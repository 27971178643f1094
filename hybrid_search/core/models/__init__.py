"""Domain models."""
from .document import (
    Candidate,
    ChannelCandidates,
    Document,
    Fragment,
    FragmentDetail,
    MergedCandidate,
    RankedResult,
    SearchDebug,
    SearchResponse,
)
from .chat import ChatMessage, ChatHistory, ConversationalSearchResponse, RewriteResult
from .config import RetrievalConfig
from .ingest import BackfillResult, IngestResult, TermHit, TermReport

__all__ = [
    "Candidate",
    "ChannelCandidates",
    "Document",
    "Fragment",
    "FragmentDetail",
    "MergedCandidate",
    "RankedResult",
    "SearchDebug",
    "SearchResponse",
    "ChatMessage",
    "ChatHistory",
    "ConversationalSearchResponse",
    "RewriteResult",
    "RetrievalConfig",
    "BackfillResult",
    "IngestResult",
    "TermHit",
    "TermReport",
]
