"""
Application configuration using Pydantic Settings.
Loads from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "CopySensei Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # API
    api_v1_prefix: str = "/api/v1"
    functions_prefix: str = "/functions/v1"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8080"]

    # Database - Individual settings (recommended)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_database: str = "copysensei"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"

    # Database pool settings
    database_pool_size: int = 10
    database_max_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Build database URL from individual components."""
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_database}"

    # Redis (local cache store backend)
    redis_url: RedisDsn = Field(default="redis://localhost:6379/0")
    cache_key_prefix: str = "copysensei"

    # Remote functions (generate-copy / fetch-research)
    functions_base_url: str = "http://localhost:8000/functions/v1"
    functions_api_key: str = ""
    functions_timeout: float = 120.0

    # LLM Providers
    openai_api_key: str = ""
    perplexity_api_key: str = ""
    perplexity_base_url: str = "https://api.perplexity.ai"

    # LLM Model Configuration
    openai_model_copy: str = "gpt-4o-mini"
    perplexity_model_research: str = "sonar"

    # LLM Settings
    llm_temperature: float = 0.7
    llm_max_tokens: int = 2000
    llm_timeout: int = 60
    llm_max_retries: int = 3
    research_temperature: float = 0.2
    research_max_tokens: int = 6000
    research_context_chars: int = 2000  # Research payload chars passed into the system prompt

    # Credits
    default_credits: int = 5  # Balance granted to a new profile
    credits_per_generation: int = 1

    # Authentication
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    dev_user_id: str = "dev-user-001"
    dev_user_email: str = "dev@copysensei.local"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Sentry (Error Tracking)
    sentry_dsn: str = ""
    sentry_environment: str = "development"
    sentry_traces_sample_rate: float = 0.1

    # Conversation Settings
    conversation_context_window: int = 10  # Prior turns sent with each generation request
    synthesize_strategy_brief: bool = True  # Build a strategy brief after a research refresh


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
