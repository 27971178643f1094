
import logging

from openai import AsyncOpenAI, OpenAIError

from hybrid_search.core.errors import ProviderError

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """LLM client for OpenAI-compatible chat completions."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
    ):
        """Initialize client.

        Args:
            api_key: API key.
            model: Model name.
            base_url: Optional OpenAI-compatible endpoint.
        """
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
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
        """Run one non-streaming completion.

        Args:
            system_prompt: System instruction.
            user_message: User message.
            max_tokens: Max response tokens.
            temperature: Sampling temperature.

        Returns:
            Completion text, empty if the model returned none.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except OpenAIError as e:
            raise ProviderError(f"Completion request failed: {e}") from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
