"""Core business services."""
from .chunker import Chunker
from .candidate_service import CandidateRetriever
from .search_service import SearchService
from .rewriter_service import QueryRewriter
from .chat_service import ConversationalSearchService
from .ingest_service import IngestService

__all__ = [
    "Chunker",
    "CandidateRetriever",
    "SearchService",
    "QueryRewriter",
    "ConversationalSearchService",
    "IngestService",
]
