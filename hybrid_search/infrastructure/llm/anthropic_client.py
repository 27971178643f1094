import logging

from anthropic import AnthropicError, AsyncAnthropic

from hybrid_search.core.errors import ProviderError

logger = logging.getLogger(__name__)


class AnthropicChatClient:
    """LLM client for the Anthropic messages API."""

    def __init__(self, api_key: str, model: str = "claude-3-5-haiku-20241022"):
        self._client = AsyncAnthropic(api_key=api_key, max_retries=0)
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 60,
        temperature: float = 0.0,
    ) -> str:
        """Run one non-streaming completion, returning the joined text blocks."""
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
        except AnthropicError as e:
            raise ProviderError(f"Anthropic request failed: {e}") from e

        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
