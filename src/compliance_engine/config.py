"""Configuration management using pydantic-settings."""

import logging

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Compliance Answer Engine"
    DEBUG: bool = False

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./compliance_engine.db"

    # LLM Provider Selection
    LLM_PROVIDER: str = "claude"  # 'ollama', 'claude', or empty for auto-select

    # Ollama (local LLM)
    OLLAMA_BASE_URL: str = "http://ollama:11434"
    OLLAMA_LLM_MODEL: str = "llama3.1:8b"

    # Anthropic (Claude)
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"

    # Vector search (Upstash Vector REST API)
    UPSTASH_VECTOR_REST_URL: str = ""
    UPSTASH_VECTOR_REST_TOKEN: str = ""
    VECTOR_TOP_K: int = 100  # Upstash allows 1000, 100 is practical
    VECTOR_MIN_SCORE: float = 0.2  # Results below this are noise
    VECTOR_TIMEOUT: float = 30.0

    # Embedding sync webhook (empty = skip sync)
    EMBEDDING_SYNC_URL: str = ""
    EMBEDDING_SYNC_TIMEOUT: float = 120.0

    # Auto-fill
    AUTOFILL_GROUP_SIZE: int = 10  # Max concurrent model calls per group
    PHYSICAL_CONTROL_GROUP: str = "7"  # ISO 27001 Annex A physical controls
    FULLY_REMOTE_CONTEXT_QUESTION: str = "How does your team work"
    ANSWER_WRITE_RETRIES: int = 3  # Attempts on version conflicts

    @property
    def vector_search_configured(self) -> bool:
        """Check if vector search credentials are present."""
        return bool(self.UPSTASH_VECTOR_REST_URL and self.UPSTASH_VECTOR_REST_TOKEN)

    @model_validator(mode="after")
    def check_autofill_settings(self) -> "Settings":
        """Validate auto-fill settings."""
        if self.AUTOFILL_GROUP_SIZE < 1:
            logging.warning(
                f"AUTOFILL_GROUP_SIZE={self.AUTOFILL_GROUP_SIZE} is invalid, using 1"
            )
            self.AUTOFILL_GROUP_SIZE = 1
        return self


settings = Settings()
