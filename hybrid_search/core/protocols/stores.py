"""Storage protocols for dependency injection."""
from typing import Any, Optional, Protocol, runtime_checkable

from ..models.chat import ChatMessage, RewriteResult
from ..models.config import RetrievalConfig
from ..models.document import Document, Fragment, FragmentDetail


@runtime_checkable
class ConfigStoreProtocol(Protocol):
    """Key-value store of per-collection retrieval configs."""

    def get_or_create(self, collection_id: str) -> RetrievalConfig:
        """Get config, creating a default one if absent."""
        ...

    def update(self, collection_id: str, partial: dict[str, Any]) -> RetrievalConfig:
        """Apply a validated partial update and return the new config."""
        ...


@runtime_checkable
class FragmentStoreProtocol(Protocol):
    """Document and fragment storage."""

    async def add_document(self, document: Document, fragments: list[Fragment]) -> list[Fragment]:
        """Store a document and its fragments.

        Returns:
            Stored fragments with id, document_id and created_at set.
        """
        ...

    async def fetch_fragment_details(self, ids: list[str]) -> list[FragmentDetail]:
        """Hydrate fragments by ID. Unknown IDs are omitted."""
        ...

    async def list_fragments(self, collection_id: str) -> list[Fragment]:
        """All fragments of a collection in insertion order."""
        ...

    async def get_document(self, document_id: str) -> Optional[Document]:
        ...


@runtime_checkable
class HistoryStoreProtocol(Protocol):
    """Read access to persisted conversation turns."""

    def recent_turns(self, conversation_id: str, limit: int) -> list[ChatMessage]:
        """Last ``limit`` turns in chronological order."""
        ...


@runtime_checkable
class RewriteLogProtocol(Protocol):
    """Sink for rewrite observability records."""

    def record(self, result: RewriteResult, session_id: Optional[str] = None) -> None:
        """Persist one rewrite. Must not raise."""
        ...
