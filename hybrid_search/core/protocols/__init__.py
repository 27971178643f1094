"""Protocol interfaces for dependency injection."""
from .embedder import EmbedderProtocol
from .vector_store import VectorIndexProtocol
from .lexical_index import LexicalIndexProtocol
from .llm import LLMProtocol
from .stores import (
    ConfigStoreProtocol,
    FragmentStoreProtocol,
    HistoryStoreProtocol,
    RewriteLogProtocol,
)

__all__ = [
    "EmbedderProtocol",
    "VectorIndexProtocol",
    "LexicalIndexProtocol",
    "LLMProtocol",
    "ConfigStoreProtocol",
    "FragmentStoreProtocol",
    "HistoryStoreProtocol",
    "RewriteLogProtocol",
]
