import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def _config_defaults(settings: Settings) -> dict[str, Any]:
    return {
        "w_vec": settings.default_w_vec,
        "w_text": settings.default_w_text,
        "top_k": settings.default_top_k,
        "vec_candidates": settings.default_vec_candidates,
        "text_candidates": settings.default_text_candidates,
        "recency_boost": settings.default_recency_boost,
        "recency_lambda": settings.default_recency_lambda,
        "min_score": settings.default_min_score,
    }


def _build_embedder(settings: Settings):
    """Embedding provider for the configured backend, or None."""
    backend = settings.embedding_backend.lower()

    if backend == "sentence_transformers":
        from .infrastructure.embeddings.sentence_transformer import (
            SentenceTransformerEmbedder,
        )

        return SentenceTransformerEmbedder(
            settings.local_embedding_model,
            query_prefix=settings.local_query_prefix,
            passage_prefix=settings.local_passage_prefix,
        )

    if backend == "openai":
        if not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY not set, vector channel disabled")
            return None
        from .infrastructure.embeddings.openai_embedder import OpenAIEmbedder

        return OpenAIEmbedder(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            base_url=settings.llm_base_url,
        )

    logger.info(f"Embedding backend '{backend}': vector channel disabled")
    return None


def _build_llms(settings: Settings) -> list:
    """Rewriter clients in fallback order: OpenAI-compatible first, then Anthropic."""
    if not settings.rewriter_enabled:
        logger.info("Rewriter disabled, queries pass through unchanged")
        return []

    clients = []
    api_key = settings.llm_api_key or settings.openai_api_key
    if api_key:
        from .infrastructure.llm.openai_client import OpenAIChatClient

        clients.append(
            OpenAIChatClient(
                api_key=api_key,
                model=settings.rewriter_model,
                base_url=settings.llm_base_url,
            )
        )
    if settings.anthropic_api_key:
        from .infrastructure.llm.anthropic_client import AnthropicChatClient

        clients.append(
            AnthropicChatClient(
                api_key=settings.anthropic_api_key,
                model=settings.rewriter_fallback_model,
            )
        )

    if not clients:
        logger.info("Rewriter LLM not configured, queries pass through unchanged")
    return clients


def configure_container(settings: Settings) -> Container:
    """Configure container with all dependencies.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.lexical_index import LexicalIndexProtocol
    from .core.protocols.stores import (
        ConfigStoreProtocol,
        FragmentStoreProtocol,
        HistoryStoreProtocol,
        RewriteLogProtocol,
    )
    from .core.protocols.vector_store import VectorIndexProtocol
    from .core.services.candidate_service import CandidateRetriever
    from .core.services.chat_service import ConversationalSearchService
    from .core.services.chunker import Chunker
    from .core.services.ingest_service import IngestService
    from .core.services.rewriter_service import QueryRewriter
    from .core.services.search_service import SearchService
    from .infrastructure.lexical.bm25_index import BM25LexicalIndex
    from .infrastructure.observability.rewrite_log import JsonlRewriteLog
    from .infrastructure.storage.config_store import (
        InMemoryConfigStore,
        JsonFileConfigStore,
    )
    from .infrastructure.storage.fragment_store import InMemoryFragmentStore
    from .infrastructure.storage.history_store import InMemoryHistoryStore

    container.register(EmbedderProtocol, lambda: _build_embedder(settings), singleton=True)

    def vector_index():
        if settings.vector_backend.lower() == "chroma":
            from .infrastructure.vector_stores.chroma_store import ChromaVectorIndex

            return ChromaVectorIndex(
                host=settings.chroma_host,
                port=settings.chroma_port,
                collection_prefix=settings.chroma_collection_prefix,
                timeout=settings.index_timeout_s,
            )
        from .infrastructure.vector_stores.memory_store import InMemoryVectorIndex

        return InMemoryVectorIndex()

    container.register(VectorIndexProtocol, vector_index, singleton=True)
    container.register(LexicalIndexProtocol, BM25LexicalIndex, singleton=True)
    container.register(FragmentStoreProtocol, InMemoryFragmentStore, singleton=True)
    container.register(HistoryStoreProtocol, InMemoryHistoryStore, singleton=True)

    def config_store():
        defaults = _config_defaults(settings)
        if settings.config_store_path:
            return JsonFileConfigStore(settings.config_store_path, defaults)
        return InMemoryConfigStore(defaults)

    container.register(ConfigStoreProtocol, config_store, singleton=True)

    container.register(
        RewriteLogProtocol,
        lambda: JsonlRewriteLog(settings.rewrite_log_path) if settings.rewrite_log_path else None,
        singleton=True,
    )

    container.register(
        Chunker,
        lambda: Chunker(
            target_chars=settings.chunk_target_chars,
            overlap_sentences=settings.chunk_overlap_sentences,
        ),
        singleton=True,
    )

    container.register(
        CandidateRetriever,
        lambda: CandidateRetriever(
            embedder=container.resolve(EmbedderProtocol),
            vector_index=container.resolve(VectorIndexProtocol),
            lexical_index=container.resolve(LexicalIndexProtocol),
            embed_timeout=settings.embed_timeout_s,
            index_timeout=settings.index_timeout_s,
            retries=settings.call_retries,
        ),
        singleton=True,
    )

    container.register(
        SearchService,
        lambda: SearchService(
            retriever=container.resolve(CandidateRetriever),
            config_store=container.resolve(ConfigStoreProtocol),
            fragment_store=container.resolve(FragmentStoreProtocol),
        ),
        singleton=True,
    )

    container.register(
        QueryRewriter,
        lambda: QueryRewriter(
            llm=_build_llms(settings),
            history_turns=settings.rewriter_history_turns,
            assistant_truncate_chars=settings.rewriter_assistant_truncate_chars,
            max_chars=settings.rewriter_max_chars,
            max_tokens=settings.rewriter_max_tokens,
            temperature=settings.rewriter_temperature,
            timeout=settings.rewriter_timeout_s,
            retries=settings.call_retries,
            rewrite_log=container.resolve(RewriteLogProtocol),
            enabled=settings.rewriter_enabled,
        ),
        singleton=True,
    )

    container.register(
        ConversationalSearchService,
        lambda: ConversationalSearchService(
            search_service=container.resolve(SearchService),
            rewriter=container.resolve(QueryRewriter),
            history_store=container.resolve(HistoryStoreProtocol),
            continuity_promotion=settings.continuity_promotion,
            history_limit=2 * settings.rewriter_history_turns,
        ),
        singleton=True,
    )

    container.register(
        IngestService,
        lambda: IngestService(
            chunker=container.resolve(Chunker),
            fragment_store=container.resolve(FragmentStoreProtocol),
            lexical_index=container.resolve(LexicalIndexProtocol),
            vector_index=container.resolve(VectorIndexProtocol),
            embedder=container.resolve(EmbedderProtocol),
            batch_size=settings.embed_batch_size,
            embed_timeout=settings.embed_timeout_s,
            retries=settings.call_retries,
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return container
