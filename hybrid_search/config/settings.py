
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    # Rewriter LLM (OpenAI-compatible API)
    llm_base_url: str | None = None
    llm_api_key: str | None = None
    rewriter_enabled: bool = True
    rewriter_model: str = "gpt-4o-mini"
    rewriter_max_tokens: int = 60
    rewriter_temperature: float = 0.0
    rewriter_history_turns: int = 3
    rewriter_assistant_truncate_chars: int = 150
    rewriter_max_chars: int = 200
    rewrite_log_path: str = "logs/rewrites.jsonl"

    # Fallback rewriter (Anthropic), tried when the first client fails or returns nothing
    anthropic_api_key: str | None = None
    rewriter_fallback_model: str = "claude-3-5-haiku-20241022"

    # Embeddings
    embedding_backend: str = "openai"  # "openai" | "sentence_transformers" | "none"
    embedding_model: str = "text-embedding-3-small"
    local_embedding_model: str = "intfloat/multilingual-e5-base"
    local_query_prefix: str = "query: "
    local_passage_prefix: str = "passage: "
    openai_api_key: str | None = None

    # Vector index
    vector_backend: str = "memory"  # "memory" | "chroma"
    chroma_host: str = "localhost"
    chroma_port: int = 8001
    chroma_collection_prefix: str = "fragments_"

    # Stores
    config_store_path: str = ""

    # Deadlines for external calls (seconds)
    embed_timeout_s: float = 10.0
    index_timeout_s: float = 10.0
    rewriter_timeout_s: float = 8.0
    call_retries: int = 1

    # Defaults for new collection configs
    default_w_vec: float = 0.7
    default_w_text: float = 0.3
    default_top_k: int = 8
    default_vec_candidates: int = 30
    default_text_candidates: int = 30
    default_recency_boost: bool = False
    default_recency_lambda: float = 0.02
    default_min_score: float = 0.15

    # Chunking / ingestion
    chunk_target_chars: int = 1800
    chunk_overlap_sentences: int = 2
    embed_batch_size: int = 20

    # Orchestration
    continuity_promotion: bool = True

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
