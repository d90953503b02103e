"""Configuration management for the question generation service."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    env: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # LLM API Keys
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "google_api_key"),
    )

    # Models
    gemini_fast_model: str = "gemini-1.5-flash"
    gemini_strong_model: str = "gemini-1.5-pro"
    temperature: float = 0.7
    max_output_tokens: int = 8192
    request_timeout_seconds: Optional[float] = None  # None = no call-site timeout

    # Rate Limiting
    requests_per_minute: int = 10
    min_request_interval_seconds: float = 2.0
    rate_limit_window_seconds: float = 60.0

    # Retry Settings
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_exponential_base: float = 2.0
    max_retry_hint_seconds: float = 60.0  # Provider hints above this are ignored

    # Response Cache
    cache_ttl_seconds: int = 24 * 60 * 60
    cache_sweep_interval_seconds: int = 60 * 60
    hash_prefix_chars: int = 1000

    # Prompt / Generation Settings
    content_char_budget: int = 3000
    fallback_max_questions: int = 5
    fallback_max_content_chars: int = 2000
    default_confidence: float = 0.8

    # HTTP layer behaviour
    placeholder_on_failure: bool = False


# Global settings instance
settings = Settings()
