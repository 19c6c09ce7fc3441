"""
Centralized configuration using Pydantic BaseSettings.
All environment variables are loaded here - no hardcoded values.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Feed Core"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Ranking
    RANKING_JITTER: float = 10.0
    RANKING_INTEREST_BOOST: float = 50.0
    RANKING_TRENDING_BOOST: float = 20.0
    FEED_RESHUFFLE_INTERVAL_SEC: int = 15  # Ranked order is stable this long
    DEFAULT_FEED_LIMIT: int = 50
    MAX_FEED_LIMIT: int = 500

    # Prefetch buffers (bump a bucket name to invalidate it)
    CACHE_DIR: Optional[str] = None  # None keeps buffers in memory
    MEDIA_BUCKET: str = "media-buffer-v4"
    IMAGE_BUCKET: str = "image-cache-v1"
    MEDIA_CHUNK_BYTES: int = 1536 * 1024
    PREFETCH_MAX_CONCURRENT_FETCHES: int = 4
    PREFETCH_TIMEOUT_SEC: float = 20.0
    PREFETCH_TRENDING_SEED: int = 3
    PREFETCH_NEWEST_SEED: int = 5

    # Narration provider
    NARRATION_BASE_URL: str = "https://api.elevenlabs.io"
    NARRATION_VOICE_ID: str = "21m00Tcm4TlvDq8ikWAM"
    NARRATION_MODEL_ID: str = "eleven_multilingual_v2"
    NARRATION_STABILITY: float = 0.45
    NARRATION_SIMILARITY_BOOST: float = 0.8
    NARRATION_STYLE: float = 0.6
    NARRATION_SPEAKER_BOOST: bool = True
    NARRATION_TIMEOUT_SEC: float = 15.0
    NARRATION_MAX_RETRIES: int = 3

    # Key pool
    KEY_ACTIVE_MIN_REMAINING: int = 100  # Characters
    KEY_MIN_LENGTH: int = 10
    KEY_PROBE_TIMEOUT_SEC: float = 10.0

    # Telemetry
    ENABLE_OTEL: bool = False  # Default to False to prevent gRPC errors in dev
    ENABLE_PROMETHEUS: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance - singleton pattern."""
    return Settings()
