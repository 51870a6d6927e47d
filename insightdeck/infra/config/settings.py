"""
Application configuration settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=[".env", "../.env"],
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field("InsightDeck API", alias="APP_NAME")
    environment: str = Field("development", alias="ENVIRONMENT")
    debug: bool = Field(False, alias="DEBUG")

    # Server
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(8000, alias="PORT")

    # LLM backends: openai | anthropic | deepseek | mock
    llm_backend: str = Field("openai", alias="LLM_BACKEND")
    llm_fallback_backend: Optional[str] = Field(None, alias="LLM_FALLBACK_BACKEND")

    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    openai_model: str = Field("gpt-4o", alias="OPENAI_MODEL")
    openai_fast_model: str = Field("gpt-4o-mini", alias="OPENAI_FAST_MODEL")

    anthropic_api_key: Optional[str] = Field(None, alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(
        "claude-3-5-haiku-latest", alias="ANTHROPIC_MODEL"
    )

    deepseek_api_key: Optional[str] = Field(None, alias="DEEPSEEK_API_KEY")
    deepseek_model: str = Field("deepseek-chat", alias="DEEPSEEK_MODEL")
    deepseek_base_url: str = Field(
        "https://api.deepseek.com/v1", alias="DEEPSEEK_BASE_URL"
    )

    llm_temperature: float = Field(0.7, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(400, alias="LLM_MAX_TOKENS")
    llm_timeout: float = Field(30.0, alias="LLM_TIMEOUT")

    # Task queue
    queue_max_concurrent: int = Field(3, alias="QUEUE_MAX_CONCURRENT")
    queue_max_retries: int = Field(3, alias="QUEUE_MAX_RETRIES")
    queue_cache_ttl: float = Field(300.0, alias="QUEUE_CACHE_TTL")
    queue_base_backoff: float = Field(1.0, alias="QUEUE_BASE_BACKOFF")
    queue_max_backoff: float = Field(10.0, alias="QUEUE_MAX_BACKOFF")
    queue_dedupe_in_flight: bool = Field(True, alias="QUEUE_DEDUPE_IN_FLIGHT")

    # Slide generation
    max_payload_bytes: int = Field(100_000, alias="MAX_PAYLOAD_BYTES")
    data_chunk_size: int = Field(4000, alias="DATA_CHUNK_SIZE")
    request_timeout_seconds: float = Field(60.0, alias="REQUEST_TIMEOUT_SECONDS")
    allow_partial_results: bool = Field(True, alias="ALLOW_PARTIAL_RESULTS")
    cache_identical_requests: bool = Field(False, alias="CACHE_IDENTICAL_REQUESTS")

    # CORS
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    # Observability
    prometheus_metrics_enabled: bool = Field(True, alias="PROMETHEUS_METRICS_ENABLED")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("json", alias="LOG_FORMAT")

    def get_cors_origins(self) -> list[str]:
        """Parse CORS origins from string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


@lru_cache
def get_settings() -> Settings:
    """Get settings instance (useful for dependency injection)."""
    return Settings()
