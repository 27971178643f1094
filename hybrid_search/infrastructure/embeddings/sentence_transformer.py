import asyncio
import logging
from functools import cached_property

from sentence_transformers import SentenceTransformer

from hybrid_search.core.errors import ProviderError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embedding provider, runs the model in a worker thread.

    E5 models expect "query: " before search queries and "passage: " before
    indexed text.
    """

    def __init__(
        self,
        model_name: str = "intfloat/multilingual-e5-base",
        query_prefix: str = "query: ",
        passage_prefix: str = "passage: ",
    ):
        self._model_name = model_name
        self._prefixes = {"query": query_prefix, "passage": passage_prefix}

    @property
    def model_name(self) -> str:
        return self._model_name

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    def warmup(self) -> None:
        _ = self.model
        logger.info("Embedding model warmed up")

    def _prefixed(self, texts: list[str], input_type: str) -> list[str]:
        prefix = self._prefixes.get(input_type, "")
        return [f"{prefix}{text}" for text in texts]

    def _encode(self, texts: list[str]) -> list[list[float]]:
        vectors = self.model.encode(texts, convert_to_numpy=True, normalize_embeddings=True)
        return vectors.tolist()

    async def embed(
        self, texts: list[str], input_type: str = "passage"
    ) -> list[list[float]]:
        if not texts:
            return []
        try:
            return await asyncio.to_thread(self._encode, self._prefixed(texts, input_type))
        except Exception as e:
            raise ProviderError(f"Local embedding failed: {e}") from e
