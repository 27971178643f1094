import logging

from openai import AsyncOpenAI, OpenAIError

from hybrid_search.core.errors import ProviderError

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embedding provider for the OpenAI embeddings API."""

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
    ):
        """Initialize embedder.

        Args:
            api_key: API key.
            model: Embedding model name.
            base_url: Optional OpenAI-compatible endpoint.
        """
        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)
        self._model = model

    @property
    def model_name(self) -> str:
        return self._model

    async def embed(
        self, texts: list[str], input_type: str = "passage"
    ) -> list[list[float]]:
        """Embed texts, preserving input order. OpenAI models take no prefix."""
        if not texts:
            return []
        try:
            response = await self._client.embeddings.create(model=self._model, input=texts)
        except OpenAIError as e:
            raise ProviderError(f"Embedding request failed: {e}") from e

        data = sorted(response.data, key=lambda d: d.index)
        if len(data) != len(texts):
            raise ProviderError(
                f"Embedding count mismatch: sent {len(texts)}, got {len(data)}"
            )
        return [list(d.embedding) for d in data]
