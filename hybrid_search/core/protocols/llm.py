"""LLM protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for chat-completion client."""

    @property
    def model(self) -> str:
        """Model identifier used for completions."""
        ...

    async def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: int = 60,
        temperature: float = 0.0,
    ) -> str:
        """Run a single non-streaming completion.

        Args:
            system_prompt: System instruction.
            user_message: User message.
            max_tokens: Max response tokens.
            temperature: Sampling temperature.

        Returns:
            Raw completion text.

        Raises:
            ProviderError: Transport or API failure.
        """
        ...
