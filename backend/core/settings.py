"""Application settings loaded from the environment."""

import os
from functools import lru_cache
from typing import List

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.SCHOOL_SYSTEM_NAME: str = os.getenv("SCHOOL_SYSTEM_NAME", "Ministry of Education")

        # Recommendation planner
        self.RECOMMENDATION_TOP_K: int = int(os.getenv("RECOMMENDATION_TOP_K", "3"))
        self.MIN_CONCERN_SHORTFALL: float = float(os.getenv("MIN_CONCERN_SHORTFALL", "0.25"))
        self.HIGH_PRIORITY_SHORTFALL: float = float(os.getenv("HIGH_PRIORITY_SHORTFALL", "0.60"))
        self.MEDIUM_PRIORITY_SHORTFALL: float = float(os.getenv("MEDIUM_PRIORITY_SHORTFALL", "0.40"))

        # Recommendation text (LLM)
        self.AI_ENABLED: bool = _env_flag("AI_ENABLED")
        self.AI_PROVIDER: str = os.getenv("AI_PROVIDER", "openai").strip().lower()
        self.OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
        self.OPENAI_MODEL: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
        self.AI_TIMEOUT_SECONDS: float = float(os.getenv("AI_TIMEOUT_SECONDS", "20"))
        self.AI_TEMPERATURE: float = float(os.getenv("AI_TEMPERATURE", "0.2"))

        # Comma-separated allowed origins, e.g. http://localhost:5173,https://app.example.com
        raw_origins = os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
        self.CORS_ORIGINS: List[str] = [o.strip() for o in raw_origins.split(",") if o.strip()]

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

    @property
    def has_openai_key(self) -> bool:
        return bool(self.OPENAI_API_KEY)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
