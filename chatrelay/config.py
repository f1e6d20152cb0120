"""Application configuration."""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_FILE = Path(__file__).resolve().parents[1] / ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    # Provider credentials
    openai_api_key: str = ""
    openrouter_api_key: str = ""
    ollama_url: str = ""

    # Default models
    apple_default_model: str = "system-default"
    openai_default_model: str = "gpt-4o"
    openrouter_default_model: str = "openai/gpt-4o"
    ollama_default_model: str = "llama3.2"

    # Model cache
    model_cache_max_entries: int = 10
    model_cache_max_age_seconds: float = 300.0
    model_cache_cleanup_interval_seconds: float = 60.0

    # Timeouts
    provider_probe_timeout_seconds: float = 5.0
    ollama_models_timeout_seconds: float = 10.0
    connection_test_timeout_seconds: float = 15.0
    best_provider_timeout_seconds: float = 5.0


settings = Settings()
