"""Chat domain models."""
from dataclasses import asdict, dataclass, field
from typing import Optional

from .document import SearchResponse


@dataclass
class ChatMessage:
    """Conversation turn."""
    role: str  # "user" | "assistant"
    content: str


@dataclass
class ChatHistory:
    """Chat history with limit."""
    messages: list[ChatMessage] = field(default_factory=list)
    max_messages: int = 10

    def add(self, message: ChatMessage) -> None:
        """Add message to history."""
        self.messages.append(message)
        if len(self.messages) > self.max_messages:
            self.messages = self.messages[-self.max_messages:]


@dataclass
class RewriteResult:
    """Outcome of conversational query rewriting."""
    original: str
    rewritten: str
    was_rewritten: bool
    model: Optional[str] = None
    latency_ms: Optional[int] = None

    @classmethod
    def passthrough(cls, query: str) -> "RewriteResult":
        return cls(original=query, rewritten=query, was_rewritten=False)

    def to_dict(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class ConversationalSearchResponse:
    """Search response for a turn in a conversation."""
    search: SearchResponse
    rewrite: RewriteResult
    retrieval_query: str
    continuity_promoted: bool = False
    anchor_fragment_id: Optional[str] = None

    @property
    def results(self):
        return self.search.results

    @property
    def insufficient_evidence(self) -> bool:
        return self.search.insufficient_evidence

    def to_dict(self) -> dict:
        payload = self.search.to_dict()
        payload["rewrite"] = self.rewrite.to_dict()
        payload["retrieval_query"] = self.retrieval_query
        payload["continuity_promoted"] = self.continuity_promoted
        if self.anchor_fragment_id is not None:
            payload["anchor_fragment_id"] = self.anchor_fragment_id
        return payload
