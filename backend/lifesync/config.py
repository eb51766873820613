"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() not in ("TRACE", "VERBOSE"):
            self.log_level = "DEBUG"

    # Database
    database_url: str

    # Security
    secret_key: str  # Shared with the session provider, verifies bearer tokens
    algorithm: str = "HS256"
    encryption_key: str = ""  # Credential vault key, at least 32 characters
    cron_secret: str = ""  # Bearer secret for scheduled trigger endpoints

    # CORS
    cors_origins: str = "http://localhost:3077"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    api_v1_str: str = "/api/v1"
    timezone: str = "UTC"  # Used for week boundaries

    # Clockify
    clockify_base_url: str = "https://api.clockify.me/api/v1"
    clockify_timeout_seconds: float = 30.0
    default_project_color: str = "#0B83D9"

    # Sync
    full_sync_days: int = 90
    incremental_fallback_days: int = 7
    entries_page_size: int = 500  # Clockify maximum; a single page is fetched per run
    auto_sync_batch_size: int = 10
    sync_stale_after_minutes: int = 15

    # Snapshots
    default_weekly_available_hours: float = 112.0

    # In-process scheduler (external cron triggers are the default)
    scheduler_enabled: bool = False
    auto_sync_interval_minutes: int = 30
    weekly_snapshot_cron: str = "0 1 * * 1"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
