"""Domain errors."""


class HybridSearchError(Exception):
    """Base error for the search core."""


class ProviderError(HybridSearchError):
    """Embedding or LLM provider failed (transport or API error)."""


class RetrievalBackendError(HybridSearchError):
    """Vector or lexical index call failed."""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"{channel} index failed: {message}")


class ConfigValidationError(HybridSearchError, ValueError):
    """Invalid retrieval config update."""
