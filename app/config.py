from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ==========================================================================
    # MongoDB Configuration
    # ==========================================================================
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_database: str = "cabpool"

    # ==========================================================================
    # Redis Configuration
    # ==========================================================================
    redis_url: str = "redis://localhost:6379/0"
    notification_channel_prefix: str = "cabpool:notifications"

    # ==========================================================================
    # JWT Configuration
    # ==========================================================================
    jwt_secret: str = "dev-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"

    # ==========================================================================
    # Rate Limiting
    # ==========================================================================
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 60
    rate_limit_auth_per_minute: int = 300

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    api_v1_str: str = "/api/v1"
    debug: bool = False
    cors_origins: str = "*"
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into list."""
        if self.cors_origins == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ==========================================================================
    # Matching Configuration
    # ==========================================================================
    match_time_window_minutes: int = 25
    # None disables the geospatial pre-filter
    match_search_radius_meters: Optional[float] = None
    pool_match_min_score: float = 0.0
    group_match_min_score: float = 30.0

    # ==========================================================================
    # Group Configuration
    # ==========================================================================
    min_seat_count: int = 2
    max_seat_count: int = 4
    visible_requests_limit: int = 50

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to avoid re-reading env vars on every request.
    """
    return Settings()


# Convenience export
settings = get_settings()
