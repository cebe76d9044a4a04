"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

PROVIDER_NAMES = ("gemini", "openai")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    meal_plans_table: str = "meal_plans"
    openai_api_key: str
    openai_model: str = "gpt-4o"
    gemini_api_key: str
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    primary_provider: str = "gemini"
    week_generation_timeout_seconds: float = 180.0
    meal_generation_timeout_seconds: float = 60.0
    rate_limit_retries: int = 2
    rate_limit_backoff_seconds: float = 2.0
    max_batch_meals: int = 10
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_provider_order(primary: str | None) -> list[str]:
    """Return provider names with the configured primary first."""
    if primary is None:
        return list(PROVIDER_NAMES)
    cleaned = primary.strip().lower()
    if cleaned not in PROVIDER_NAMES:
        return list(PROVIDER_NAMES)
    return [cleaned] + [name for name in PROVIDER_NAMES if name != cleaned]
