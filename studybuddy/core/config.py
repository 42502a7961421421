"""Application configuration from environment."""
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "Study Buddy"
    environment: str = "development"  # development | production | test
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./study_buddy.db"
    db_connect_timeout_seconds: float = 10.0
    db_timeout_seconds: float = 5.0
    retry_backoff_seconds: float = 0.2

    # Password hashing
    bcrypt_rounds: int = 12
    hash_timeout_seconds: float = 5.0

    # Session tokens (JWT)
    secret_key: str = "change-me-in-production-use-env"
    algorithm: str = "HS256"
    session_lifetime_seconds: int = 60 * 60 * 24 * 30  # 30 days
    session_refresh_fraction: float = 0.25  # re-issue in the last quarter of lifetime
    session_key_epoch: int = 1

    # Chat-completion provider (OpenAI-compatible)
    chat_api_url: str = "https://api.groq.com/openai/v1/chat/completions"
    chat_api_key: str | None = None
    chat_model: str = "mixtral-8x7b-32768"
    chat_timeout_seconds: float = 30.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def session_cookie_name(self) -> str:
        if self.is_production:
            return "__Secure-studybuddy.session"
        return "studybuddy.session"


@lru_cache
def get_settings() -> Settings:
    return Settings()
