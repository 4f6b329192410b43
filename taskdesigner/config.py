"""
Application configuration using pydantic-settings.
All settings are loaded from environment variables or .env file.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Claude API
    anthropic_api_key: str = ""
    claude_model: str = "claude-haiku-4-5"
    completion_timeout_seconds: float = 60.0
    completion_max_tokens: int = 2048
    structured_temperature: float = 0.2
    classifier_temperature: float = 0.0

    # Workflow
    classifier_strategy: str = "pattern"  # "pattern" | "llm"
    summary_strategy: str = "sections"  # "sections" | "llm"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    log_to_file: bool = True
    sentry_dsn: str | None = None
    cors_origins: list[str] = ["*"]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
