from hybrid_search.core.models.chat import ChatHistory, ChatMessage


class InMemoryHistoryStore:
    """Conversation turns kept in process memory, bounded per conversation."""

    def __init__(self, max_messages: int = 50):
        self._max_messages = max_messages
        self._histories: dict[str, ChatHistory] = {}

    def append(self, conversation_id: str, role: str, content: str) -> None:
        history = self._histories.setdefault(
            conversation_id, ChatHistory(max_messages=self._max_messages)
        )
        history.add(ChatMessage(role=role, content=content))

    def recent_turns(self, conversation_id: str, limit: int) -> list[ChatMessage]:
        history = self._histories.get(conversation_id)
        if history is None or limit <= 0:
            return []
        return list(history.messages[-limit:])

    def clear(self, conversation_id: str) -> None:
        self._histories.pop(conversation_id, None)
