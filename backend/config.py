"""
PolicyWise Backend Configuration
Environment-based settings using Pydantic Settings
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # API Keys
    # Checked when the model client is first built, not at import time
    gemini_api_key: str = ""

    # Gemini Models
    gemini_analysis_model: str = "gemini-2.5-flash"
    gemini_chat_model: str = "gemini-2.5-flash"
    gemini_temperature: float = 0.2
    gemini_max_output_tokens: int = 8192

    # Firebase (identity + saved analyses)
    # When firebase_project_id is unset, saved analyses live in memory
    firebase_project_id: str | None = None
    firebase_credentials_path: str | None = None
    # Memory mode only: accept the bearer token itself as the uid
    dev_auth: bool = False

    # Server Configuration
    frontend_url: str = "http://localhost:9002"
    max_file_size_mb: int = 20

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Computed
    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def firebase_enabled(self) -> bool:
        return bool(self.firebase_project_id)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures we only load settings once,
    then reuse the same instance throughout the app lifecycle.
    """
    return Settings()
