"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

STATE_BACKENDS = {"file", "supabase"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_analysis_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "low"
    openai_analysis_reasoning_effort: str | None = "high"
    openai_store: bool = False
    ai_timeout_seconds: float = 45.0
    state_backend: str = "file"
    state_dir: str = ".auranut"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_state_table: str = "app_state"
    storage_key_prefix: str = "auranut_"
    login_delay_seconds: float = 1.5
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_state_backend(raw: str | None) -> str:
    """Normalize the configured persistence backend name."""
    cleaned = (raw or "file").strip().lower()
    if cleaned not in STATE_BACKENDS:
        raise ValueError(f"Unknown state backend: {raw!r}")
    return cleaned
