"""
Homepage Backend — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before app starts.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Every setting has a development default. The only value the service
    cannot do anything useful without is LASTFM_API_KEY, and even then
    the notes, paint and letterboxd endpoints keep working.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///./file.db or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./homepage.db",
        description="Async SQLAlchemy connection URL",
    )

    # Pool sizing only applies to server databases; SQLite ignores it.
    db_pool_size: int = Field(default=5, ge=1, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # ── Last.fm ───────────────────────────────────────────────────────────
    # How to obtain: https://www.last.fm/api/account/create
    lastfm_api_key: str = Field(default="", description="Last.fm API key")
    lastfm_api_url: str = Field(default="http://ws.audioscrobbler.com/2.0/")
    lastfm_default_user: str = Field(default="I4ROVI")

    # Seconds a user's recent-tracks response is served from memory.
    lastfm_cache_ttl: int = Field(default=5, ge=0, le=3600)

    # ── Letterboxd ────────────────────────────────────────────────────────
    letterboxd_base_url: str = Field(default="https://letterboxd.com")
    letterboxd_user: str = Field(default="14rovi")

    # Seconds the scraped film list is served from memory (5 minutes).
    letterboxd_cache_ttl: int = Field(default=300, ge=0, le=86400)

    # Width segment of the poster endpoint: /film/<slug>/poster/std/<size>
    letterboxd_poster_size: int = Field(default=150, ge=35, le=1000)

    # ── Paint ─────────────────────────────────────────────────────────────
    paint_path: str = Field(default="./paint.png")
    paint_width: int = Field(default=1920, ge=1)
    paint_height: int = Field(default=1080, ge=1)

    # Default: 10MB = 10 * 1024 * 1024
    max_upload_size: int = Field(default=10_485_760, ge=1024, le=52_428_800)

    # ── Outbound HTTP ─────────────────────────────────────────────────────
    http_timeout: float = Field(default=10.0, gt=0, le=120)

    # Tenacity retry settings for upstream calls. Kept short: a visitor is
    # waiting on the other end of every retry.
    retry_max_attempts: int = Field(default=2, ge=1, le=10)
    retry_min_wait: float = Field(default=1.0, ge=0, le=30)
    retry_max_wait: float = Field(default=4.0, ge=0, le=120)

    # ── Circuit Breaker ───────────────────────────────────────────────────
    # After N consecutive failures an upstream is skipped for M seconds.
    cb_failure_threshold: int = Field(default=5, ge=1, le=50)
    cb_recovery_timeout: int = Field(default=60, ge=0, le=3600)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated origins; "*" allows any site to embed the widgets.
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into the list CORSMiddleware expects."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("letterboxd_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        # Item links start with "/", so the base must not end with one.
        return v.rstrip("/")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # LASTFM_API_KEY and lastfm_api_key both work
    }

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every problem and raises one ValueError listing them.
        """
        errors = []
        if not self.lastfm_api_key:
            errors.append(
                "LASTFM_API_KEY is not set; /lastfm will fail. "
                "Create one at https://www.last.fm/api/account/create"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance imported throughout the application
settings = Settings()
