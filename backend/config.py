"""
Configuration management for Errand Board.

Loads settings from .env via pydantic-settings.

Notes:
    - STORE_BACKEND picks the order store: "memory" (single process, lost on
      restart) or "sql" (SQLAlchemy, DATABASE_URL).
    - validate_production_settings() refuses the in-memory store in production.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)

STORE_BACKENDS = ("memory", "sql")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Store ───────────────────────────────────────────────────────
    store_backend: str = "memory"
    database_url: str = "sqlite:///./data/errand_board.db"

    # Seconds to wait for the in-process store lock before giving up
    lock_timeout_seconds: float = 5.0
    # Optimistic-concurrency retries for perform_action on the SQL store
    action_retry_limit: int = 3
    # Thread pool for the in-process store's blocking sections
    executor_workers: int = 4

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    log_level: str = "INFO"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def async_database_url(self) -> str:
        """Convert sqlite:///... → sqlite+aiosqlite:///... for the async driver."""
        if self.database_url.startswith("sqlite:///"):
            return self.database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        return self.database_url

    def validate_production_settings(self):
        """
        Validate settings before the app starts serving.

        Unknown store backends are always rejected. In production, the
        in-memory store and wildcard CORS are rejected too.
        """
        if self.store_backend not in STORE_BACKENDS:
            raise ValueError(
                f"STORE_BACKEND must be one of {', '.join(STORE_BACKENDS)}, "
                f"got {self.store_backend!r}"
            )
        if self.action_retry_limit < 1:
            raise ValueError("ACTION_RETRY_LIMIT must be at least 1")

        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if self.store_backend == "memory":
                raise ValueError(
                    "STORE_BACKEND=memory is not allowed in production. "
                    "Orders would be lost on every restart."
                )
            logger.info("Production settings validated")
        else:
            warnings = []
            if self.store_backend == "memory":
                warnings.append("STORE_BACKEND=memory (orders are lost on restart)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(w)


# Global settings instance
settings = Settings()
