"""Conversational query rewriter."""

import logging
import time
from typing import Optional, Sequence

from ..models.chat import ChatMessage, RewriteResult
from ..protocols.llm import LLMProtocol
from ..protocols.stores import RewriteLogProtocol
from ..resilience import call_with_deadline

logger = logging.getLogger(__name__)

REWRITER_SYSTEM_PROMPT = """You rewrite the user's latest message into a standalone search query.

You see a short conversation history and the latest user message. Output one search query that works without the conversation.

RULES:
1. If the latest message is already standalone and clear, return it exactly as it is. Do not rephrase it for style.
2. If it relies on the conversation (pronouns, "also", "same", "that", "too", "and the...?"), resolve the references from the history and keep every name, product and term it refers to.
3. If it starts a new topic, return it as a standalone query and do NOT carry names or details over from the history.
4. Output exactly one line of at most 25 words. No quotes, no label, no explanation, and never answer the question.

EXAMPLES:

History:
User: How do I reset the password on the Acme router?

Latest: Does that also work for the admin account?
→ How do I reset the admin account password on the Acme router?

---

History:
User: What is the refund window for annual plans?
Assistant: Annual plans can be refunded within 30 days of purchase...

Latest: And for monthly ones?
→ What is the refund window for monthly plans?

---

History:
User: How do I export invoices to CSV?
Assistant: Open Billing, choose Invoices and click Export...

Latest: How do I enable two-factor authentication?
→ How do I enable two-factor authentication?

---

History: [none]

Latest: Which regions support data residency?
→ Which regions support data residency?"""

BAD_STARTS = ("i ", "sure", "yes", "no", "the answer")
ARROW = "→"
LABEL = "rewritten:"


def format_history(
    turns: list[ChatMessage], last_n: int = 3, assistant_truncate_chars: int = 150
) -> str:
    """Render the last ``last_n`` exchanges as a compact transcript.

    Args:
        turns: Conversation turns in chronological order.
        last_n: Exchanges to keep (up to ``2 * last_n`` messages).
        assistant_truncate_chars: Max assistant characters before "...".

    Returns:
        Lines like "User: ..." / "Assistant: ...", or "" for no turns.
    """
    if not turns or last_n <= 0:
        return ""

    lines = []
    for turn in turns[-2 * last_n:]:
        if turn.role == "assistant":
            content = turn.content
            if len(content) > assistant_truncate_chars:
                content = content[:assistant_truncate_chars] + "..."
            lines.append(f"Assistant: {content}")
        else:
            lines.append(f"User: {turn.content}")
    return "\n".join(lines)


def build_rewriter_message(history: str, latest: str) -> str:
    """User message for the rewriter LLM call."""
    history = history.strip()
    if history:
        return f"History:\n{history}\n\nLatest: {latest}\n{ARROW}"
    return f"History: [none]\n\nLatest: {latest}\n{ARROW}"


def clean_rewritten(raw: str, original: str, max_chars: int = 200) -> str:
    """Sanitize raw LLM output, falling back to ``original`` when unusable."""
    text = (raw or "").strip()
    if text.startswith(ARROW):
        text = text[len(ARROW):].strip()
    if text.lower().startswith(LABEL):
        text = text[len(LABEL):].strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        text = text[1:-1].strip()

    if not text or len(text) > max_chars:
        return original
    if text.lower().startswith(BAD_STARTS):
        return original
    return text


class QueryRewriter:
    """Turns context-dependent follow-ups into standalone queries."""

    def __init__(
        self,
        llm: LLMProtocol | Sequence[LLMProtocol] | None,
        history_turns: int = 3,
        assistant_truncate_chars: int = 150,
        max_chars: int = 200,
        max_tokens: int = 60,
        temperature: float = 0.0,
        timeout: float = 8.0,
        retries: int = 1,
        rewrite_log: Optional[RewriteLogProtocol] = None,
        enabled: bool = True,
    ):
        """Initialize rewriter.

        Args:
            llm: Chat-completion client, or clients in fallback order. None
                or an empty list always passes through.
            history_turns: Exchanges of history shown to the LLM.
            assistant_truncate_chars: Assistant turn truncation length.
            max_chars: Longest acceptable rewritten query.
            max_tokens: Completion token limit.
            temperature: Sampling temperature.
            timeout: Deadline per LLM attempt, seconds.
            retries: Extra attempts per client after a failed call.
            rewrite_log: Optional sink for rewrite records.
            enabled: Pass through every query when False.
        """
        if llm is None:
            self._llms: list[LLMProtocol] = []
        elif isinstance(llm, (list, tuple)):
            self._llms = list(llm)
        else:
            self._llms = [llm]
        self._history_turns = history_turns
        self._assistant_truncate_chars = assistant_truncate_chars
        self._max_chars = max_chars
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._timeout = timeout
        self._retries = retries
        self._rewrite_log = rewrite_log
        self._enabled = enabled

    async def rewrite(
        self,
        current_query: str,
        recent_turns: list[ChatMessage],
        session_id: Optional[str] = None,
    ) -> RewriteResult:
        """Rewrite ``current_query`` using recent conversation turns.

        Clients are tried in order until one returns text. Never raises:
        when every client fails the original query is returned.
        """
        original = current_query.strip()

        if not recent_turns or not self._enabled or not self._llms or not original:
            return RewriteResult.passthrough(original)

        history = format_history(
            recent_turns, self._history_turns, self._assistant_truncate_chars
        )
        message = build_rewriter_message(history, original)
        started = time.perf_counter()

        raw, model = await self._complete(message)
        if model is None:
            logger.warning("Every rewriter client failed, using original query")
            return RewriteResult.passthrough(original)

        rewritten = clean_rewritten(raw, original, self._max_chars)
        result = RewriteResult(
            original=original,
            rewritten=rewritten,
            was_rewritten=rewritten != original,
            model=model,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )

        if result.was_rewritten:
            logger.info(f"Rewriter: '{original[:50]}' -> '{rewritten[:80]}'")
        if self._rewrite_log is not None:
            self._rewrite_log.record(result, session_id=session_id)
        return result

    async def _complete(self, message: str) -> tuple[str, Optional[str]]:
        """First non-empty completion and the model that produced it.

        Returns ("", model) when clients answered but all with empty text,
        and ("", None) when every client raised.
        """
        answered_by = None
        for llm in self._llms:
            try:
                raw = await call_with_deadline(
                    lambda: llm.complete(
                        system_prompt=REWRITER_SYSTEM_PROMPT,
                        user_message=message,
                        max_tokens=self._max_tokens,
                        temperature=self._temperature,
                    ),
                    timeout=self._timeout,
                    retries=self._retries,
                    label="rewriter",
                )
            except Exception as e:
                logger.warning(f"Rewriter client {llm.model} failed: {e!r}")
                continue

            if raw and raw.strip():
                return raw, llm.model
            logger.warning(f"Rewriter client {llm.model} returned no text")
            answered_by = answered_by or llm.model

        return "", answered_by
