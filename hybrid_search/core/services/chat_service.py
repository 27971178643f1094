"""Chat service - conversational retrieval for one turn."""

import logging
from dataclasses import replace
from typing import Optional

from ..models.chat import ChatMessage, ConversationalSearchResponse
from ..protocols.stores import HistoryStoreProtocol
from ..strategies.continuity import promote_anchor
from .rewriter_service import QueryRewriter
from .search_service import SearchService

logger = logging.getLogger(__name__)


def last_user_message(turns: list[ChatMessage]) -> Optional[str]:
    for turn in reversed(turns):
        if turn.role == "user" and turn.content.strip():
            return turn.content.strip()
    return None


class ConversationalSearchService:
    """Rewrites follow-ups, searches, and keeps results anchored to the prior turn."""

    def __init__(
        self,
        search_service: SearchService,
        rewriter: QueryRewriter,
        history_store: Optional[HistoryStoreProtocol] = None,
        continuity_promotion: bool = True,
        history_limit: int = 6,
    ):
        """Initialize chat service.

        Args:
            search_service: Single-query hybrid search.
            rewriter: Conversational query rewriter.
            history_store: Source of turns for ``search_conversation``.
            continuity_promotion: Run the secondary search that re-anchors
                follow-ups to the fragment that answered the previous turn.
            history_limit: Turns read from the history store.
        """
        self._search = search_service
        self._rewriter = rewriter
        self._history_store = history_store
        self._continuity_promotion = continuity_promotion
        self._history_limit = history_limit

    async def search(
        self,
        collection_id: str,
        query: str,
        history: list[ChatMessage],
        debug: bool = False,
        session_id: Optional[str] = None,
    ) -> ConversationalSearchResponse:
        """Search with conversational context.

        Flow:
            1. Rewrite the query; fall back to "{previous user} {query}".
            2. Primary search with the retrieval query.
            3. If the query was expanded, search the previous user message
               and promote its top fragment to the front.

        Args:
            collection_id: Collection to search.
            query: Latest user message.
            history: Prior turns, oldest first, excluding ``query``.
            debug: Attach debug payload.
            session_id: Forwarded to the rewrite log.

        Raises:
            RetrievalBackendError: An index lookup failed.
        """
        raw_query = query.strip()
        rewrite = await self._rewriter.rewrite(raw_query, history, session_id=session_id)
        previous_user = last_user_message(history)

        if rewrite.was_rewritten:
            retrieval_query = rewrite.rewritten
        elif previous_user:
            retrieval_query = f"{previous_user} {raw_query}"
        else:
            retrieval_query = raw_query

        response = await self._search.search(collection_id, retrieval_query, debug=debug)

        promoted = False
        anchor_id = None
        if (
            self._continuity_promotion
            and previous_user
            and retrieval_query != raw_query
            and len(response.results) > 1
        ):
            anchor_search = await self._search.search(collection_id, previous_user)
            anchor_id = anchor_search.top_fragment_id
            reordered, promoted = promote_anchor(response.results, anchor_id)
            if promoted:
                response = replace(response, results=reordered)
                if response.debug is not None:
                    response.debug.add_note(f"continuity promoted {anchor_id}")

        return ConversationalSearchResponse(
            search=response,
            rewrite=rewrite,
            retrieval_query=retrieval_query,
            continuity_promoted=promoted,
            anchor_fragment_id=anchor_id,
        )

    async def search_conversation(
        self,
        collection_id: str,
        conversation_id: str,
        query: str,
        debug: bool = False,
    ) -> ConversationalSearchResponse:
        """Search using turns persisted for ``conversation_id``."""
        history: list[ChatMessage] = []
        if self._history_store is not None:
            history = self._history_store.recent_turns(conversation_id, self._history_limit)
        return await self.search(
            collection_id, query, history, debug=debug, session_id=conversation_id
        )
