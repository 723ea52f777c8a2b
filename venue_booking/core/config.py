# venue_booking/core/config.py

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # The environment mode: 'local', 'test' or 'prod'
    ENV: str = "local"

    # Database (PostgreSQL in production, SQLite file for local runs)
    DATABASE_URL: str = "sqlite:///./venue_booking.db"

    # Redis carries realtime broadcasts
    REDIS_URL: str = "redis://localhost:6379/0"

    # JWT Secret for validating tokens
    JWT_SECRET: str = "change-me"

    # Anthropic (optional - the agent answers with a static apology without it)
    ANTHROPIC_API_KEY: Optional[str] = None

    # CORS - Stored as string, parsed via get_cors_origins() method
    CORS_ORIGINS: Optional[str] = None

    LOG_LEVEL: str = "INFO"

    # LLM Settings
    LLM_MODEL: str = "claude-sonnet-4-5-20250929"
    LLM_MAX_TOKENS: int = 1024
    LLM_TEMPERATURE: float = 0.4
    LLM_TIMEOUT_SECONDS: int = 30
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_BASE_DELAY: float = 0.5
    LLM_RETRY_MAX_DELAY: float = 5.0

    # Agent Settings
    AGENT_MAX_TOOL_ITERATIONS: int = 5
    AGENT_MAX_HISTORY_MESSAGES: int = 50
    AGENT_CONVERSATION_TTL_DAYS: int = 7
    AGENT_RATE_LIMIT_PER_MINUTE: int = 20

    # Bookings
    BOOKING_RATE_LIMIT_PER_MINUTE: int = 5
    PLATFORM_FEE_RATE: float = 0.12

    def get_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string or JSON array"""
        if not self.CORS_ORIGINS:
            return []
        v = self.CORS_ORIGINS.strip()
        if not v:
            return []
        # Try JSON array first
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("PLATFORM_FEE_RATE")
    @classmethod
    def check_fee_rate(cls, v: float) -> float:
        if not 0 <= v < 1:
            raise ValueError("PLATFORM_FEE_RATE must be in [0, 1)")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Singleton instance for direct imports
settings = get_settings()
