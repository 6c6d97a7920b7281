"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "secondhome"
    mongodb_server_selection_timeout_ms: int = 30000
    mongodb_max_pool_size: int = 10

    # AI advisor (any OpenAI-compatible endpoint)
    ai_api_key: str = ""
    ai_base_url: str = "https://api.groq.com/openai/v1"
    ai_model: str = "llama-3.3-70b-versatile"
    ai_timeout_seconds: float = 15.0

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Verification badge
    verification_fee: int = 500

    # App
    debug: bool = False
    log_level: str = "INFO"

    @property
    def ai_enabled(self) -> bool:
        """True when credentials for the AI advisor are configured."""
        return bool(self.ai_api_key.strip())

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
