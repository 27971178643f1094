import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from hybrid_search.core.models.document import Document, Fragment, FragmentDetail

logger = logging.getLogger(__name__)


class InMemoryFragmentStore:
    """Document and fragment storage kept in process memory."""

    def __init__(self):
        self._documents: dict[str, Document] = {}
        self._fragments: dict[str, Fragment] = {}
        self._by_collection: dict[str, list[str]] = {}

    async def add_document(
        self, document: Document, fragments: list[Fragment]
    ) -> list[Fragment]:
        created_at = document.created_at or datetime.now(timezone.utc)
        self._documents[document.id] = replace(document, created_at=created_at)

        stored = []
        for fragment in fragments:
            saved = replace(
                fragment,
                id=fragment.id or str(uuid.uuid4()),
                document_id=document.id,
                created_at=fragment.created_at or created_at,
            )
            self._fragments[saved.id] = saved
            self._by_collection.setdefault(document.collection_id, []).append(saved.id)
            stored.append(saved)

        logger.info(
            f"Stored document '{document.title}' ({document.id}) with {len(stored)} fragments"
        )
        return stored

    async def fetch_fragment_details(self, ids: list[str]) -> list[FragmentDetail]:
        details = []
        for fragment_id in ids:
            fragment = self._fragments.get(fragment_id)
            if fragment is None:
                continue
            document = self._documents.get(fragment.document_id or "")
            details.append(
                FragmentDetail(
                    fragment_id=fragment_id,
                    content=fragment.content,
                    meta=fragment.meta,
                    document_title=document.title if document else "Unknown",
                    document_ref=document.source_ref if document else None,
                )
            )
        return details

    async def list_fragments(self, collection_id: str) -> list[Fragment]:
        return [self._fragments[i] for i in self._by_collection.get(collection_id, [])]

    async def get_document(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)
