"""Application configuration."""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_env: str = "development"
    database_url: str

    # Redis (for Celery and progress pub/sub)
    redis_url: str = "redis://localhost:6379/0"

    # LiteLLM proxy (OpenAI-compatible chat completions)
    litellm_base_url: str = "https://proxyllm.ximplify.id/v1"
    litellm_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 30.0

    # Role matching wants short, near-deterministic answers
    classifier_temperature: float = 0.1
    classifier_max_tokens: int = 100

    # JSON documents (role proposals, assessments, job descriptions)
    generation_temperature: float = 0.3
    generation_max_tokens: int = 4000

    # Batch processing
    batch_size: int = 10
    batch_delay_seconds: float = 1.0

    # Progress polling
    poll_interval_seconds: float = 2.0

    log_file: Optional[str] = "xlsmart.log"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
