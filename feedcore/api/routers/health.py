"""
Health check router for observability.
"""
from fastapi import APIRouter

from feedcore.api.dependencies import (
    get_image_cache,
    get_key_pool_store,
    get_media_cache,
    get_prefetch_engine,
)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health Check")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready", summary="Readiness Check")
async def readiness_check() -> dict:
    """
    Readiness check for Kubernetes.
    Reports buffer buckets, pending prefetches and key pool size.
    """
    engine = get_prefetch_engine()
    config = await get_key_pool_store().load()

    return {
        "status": "ready",
        "prefetch": {
            "media_bucket": get_media_cache().bucket,
            "image_bucket": get_image_cache().bucket,
            "pending_fetches": engine.pending,
        },
        "key_pool": {
            "keys": len(config.keys),
            "current_index": config.current_index,
        },
    }
