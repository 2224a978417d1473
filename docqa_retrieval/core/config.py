"""Configuration settings for the retrieval engine."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings."""

    # Query cache (normalized query + filters + limit -> ranked results)
    query_cache_ttl: int = 3600  # 1 hour
    query_cache_max_entries: int = 1000

    # Embedding cache (normalized text -> vector)
    embedding_cache_ttl: int = 86400  # 24 hours
    embedding_cache_max_entries: int = 5000

    # Response cache (caller key -> arbitrary payload)
    response_cache_ttl: int = 1800  # 30 minutes
    response_cache_max_entries: int = 1000

    # Background sweep of expired entries
    cache_sweep_interval: float = 300.0  # 5 minutes

    # Retrieval Configuration
    similarity_threshold: float = 0.7
    default_limit: int = 10
    vector_weight: float = 0.7
    keyword_weight: float = 0.3
    keyword_min_token_length: int = 3
    chars_per_page: int = 2500

    # Embedding Configuration
    embedding_dimensions: int = 1536
    embedding_model: str = "default"
    embedding_batch_size: int = 10
    embedding_batch_delay: float = 1.0  # seconds between batches
    embedding_fallback_on_error: bool = False  # Use the fallback provider when the real one fails
    offline_mode: bool = False  # Hash-based fallback embeddings as the primary provider

    # Batch processing
    operation_timeout_ms: int = 30000  # Per-chunk deadline when generating embeddings

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        env_prefix = "RETRIEVAL_"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields in .env file


# Create settings instance
settings = Settings()
