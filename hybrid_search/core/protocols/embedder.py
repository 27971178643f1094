"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding provider."""

    @property
    def model_name(self) -> str:
        """Embedding model identifier."""
        ...

    async def embed(
        self, texts: list[str], input_type: str = "passage"
    ) -> list[list[float]]:
        """Embed texts.

        Args:
            texts: Texts to embed.
            input_type: "query" for search queries, "passage" for stored
                fragments. Models trained with asymmetric prefixes use it.

        Returns:
            One vector per text, same order as input.

        Raises:
            ProviderError: Transport or API failure.
        """
        ...
