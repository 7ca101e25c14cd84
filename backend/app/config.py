"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = "development"
    log_level: str = "INFO"
    log_dir: str | None = None

    # Active completion backend: openai, anthropic, gemini or ollama
    ai_provider: str = "ollama"

    # OpenAI
    openai_api_key: str | None = None
    openai_model: str = "gpt-3.5-turbo"
    openai_base_url: str = "https://api.openai.com/v1"

    # Anthropic
    anthropic_api_key: str | None = None
    anthropic_model: str = "claude-3-sonnet-20240229"
    anthropic_base_url: str = "https://api.anthropic.com/v1"

    # Google Gemini
    google_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # Ollama (local, no key)
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1:8b"
    ollama_use_retry: bool = False

    # Generation defaults shared by all providers
    ai_temperature: float = 0.7
    ai_max_tokens: int = 2000

    # Resilience
    llm_timeout_seconds: float = 30.0
    llm_max_retries: int = 3
    llm_retry_base_delay: float = 1.0

    # Supabase (task store and auth)
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    supabase_service_key: str | None = None

    # CORS
    cors_origins: str = "http://localhost:5173"

    # Per-client limit on the AI routes
    ai_route_rate_limit: str = "10/minute"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
