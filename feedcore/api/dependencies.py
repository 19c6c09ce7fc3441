"""
Dependency injection container.
Creates and wires all application components.
Uses FastAPI's dependency injection system.
"""
from functools import lru_cache
from pathlib import Path

import httpx

from feedcore.config import get_settings
from feedcore.core.blob_cache import BlobCache, FileSystemBlobCache, InMemoryBlobCache
from feedcore.repositories.memory import (
    InMemoryCorpusRepository,
    InMemoryInteractionRepository,
    InMemoryKeyPoolConfigStore,
    InMemoryProfileRepository,
)
from feedcore.services.feed import FeedService
from feedcore.services.interests import InterestProfileService
from feedcore.services.key_pool import KeyPoolClient, VoiceSettings
from feedcore.services.prefetch import PrefetchEngine
from feedcore.services.ranking import FeedRanker, InterestScoring, TrendingScoring


# =============================================================================
# Singleton Instances (Application Lifetime)
# =============================================================================


@lru_cache()
def get_http_client() -> httpx.AsyncClient:
    """Get the shared outbound HTTP client."""
    settings = get_settings()
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=settings.PREFETCH_TIMEOUT_SEC,
    )


@lru_cache()
def get_corpus_repository() -> InMemoryCorpusRepository:
    """Get singleton corpus repository."""
    return InMemoryCorpusRepository()


@lru_cache()
def get_interaction_repository() -> InMemoryInteractionRepository:
    """Get singleton interaction repository."""
    return InMemoryInteractionRepository()


@lru_cache()
def get_local_profile_repository() -> InMemoryProfileRepository:
    """Get singleton device-local profile repository."""
    return InMemoryProfileRepository()


@lru_cache()
def get_remote_profile_repository() -> InMemoryProfileRepository:
    """Get singleton remote profile repository."""
    return InMemoryProfileRepository()


@lru_cache()
def get_key_pool_store() -> InMemoryKeyPoolConfigStore:
    """Get singleton key pool document store."""
    return InMemoryKeyPoolConfigStore()


def _make_bucket(bucket: str) -> BlobCache:
    settings = get_settings()
    if settings.CACHE_DIR:
        return FileSystemBlobCache(Path(settings.CACHE_DIR), bucket)
    return InMemoryBlobCache(bucket)


@lru_cache()
def get_media_cache() -> BlobCache:
    """Get singleton media-chunk bucket."""
    return _make_bucket(get_settings().MEDIA_BUCKET)


@lru_cache()
def get_image_cache() -> BlobCache:
    """Get singleton image bucket."""
    return _make_bucket(get_settings().IMAGE_BUCKET)


@lru_cache()
def get_ranker() -> FeedRanker:
    """Get singleton feed ranker."""
    settings = get_settings()
    return FeedRanker(
        scoring_strategies=[
            InterestScoring(settings.RANKING_INTEREST_BOOST),
            TrendingScoring(settings.RANKING_TRENDING_BOOST),
        ],
        jitter=settings.RANKING_JITTER,
    )


@lru_cache()
def get_prefetch_engine() -> PrefetchEngine:
    """Get singleton prefetch engine."""
    settings = get_settings()
    return PrefetchEngine(
        client=get_http_client(),
        media_cache=get_media_cache(),
        image_cache=get_image_cache(),
        chunk_bytes=settings.MEDIA_CHUNK_BYTES,
        max_concurrent_fetches=settings.PREFETCH_MAX_CONCURRENT_FETCHES,
        trending_seed=settings.PREFETCH_TRENDING_SEED,
        newest_seed=settings.PREFETCH_NEWEST_SEED,
    )


@lru_cache()
def get_key_pool_client() -> KeyPoolClient:
    """Get singleton key pool client."""
    settings = get_settings()
    return KeyPoolClient(
        client=get_http_client(),
        store=get_key_pool_store(),
        voice=VoiceSettings(
            voice_id=settings.NARRATION_VOICE_ID,
            model_id=settings.NARRATION_MODEL_ID,
            stability=settings.NARRATION_STABILITY,
            similarity_boost=settings.NARRATION_SIMILARITY_BOOST,
            style=settings.NARRATION_STYLE,
            use_speaker_boost=settings.NARRATION_SPEAKER_BOOST,
        ),
        base_url=settings.NARRATION_BASE_URL,
        active_min_remaining=settings.KEY_ACTIVE_MIN_REMAINING,
        min_key_length=settings.KEY_MIN_LENGTH,
        probe_timeout_sec=settings.KEY_PROBE_TIMEOUT_SEC,
        synthesis_timeout_sec=settings.NARRATION_TIMEOUT_SEC,
    )


@lru_cache()
def get_interest_service() -> InterestProfileService:
    """Get singleton interest profile service."""
    return InterestProfileService(
        local_repo=get_local_profile_repository(),
        remote_repo=get_remote_profile_repository(),
    )


@lru_cache()
def get_feed_service() -> FeedService:
    """
    Get feed service with all dependencies wired.
    Application lifetime, so ranking snapshots survive between requests.
    """
    settings = get_settings()
    return FeedService(
        corpus_repo=get_corpus_repository(),
        interaction_repo=get_interaction_repository(),
        interests=get_interest_service(),
        ranker=get_ranker(),
        prefetch=get_prefetch_engine(),
        reshuffle_interval_sec=settings.FEED_RESHUFFLE_INTERVAL_SEC,
    )


# =============================================================================
# Cleanup Functions
# =============================================================================


def clear_caches() -> None:
    """Clear all cached singleton instances (for testing)."""
    for factory in (
        get_http_client,
        get_corpus_repository,
        get_interaction_repository,
        get_local_profile_repository,
        get_remote_profile_repository,
        get_key_pool_store,
        get_media_cache,
        get_image_cache,
        get_ranker,
        get_prefetch_engine,
        get_key_pool_client,
        get_interest_service,
        get_feed_service,
    ):
        factory.cache_clear()
