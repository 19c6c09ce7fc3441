"""
Feed API router.
Ranked feed, corpus updates, and per-user interactions and interests.
"""
import hashlib
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Query, Response, status

from feedcore.api.dependencies import get_feed_service, get_interest_service
from feedcore.config import get_settings
from feedcore.models.schemas import (
    CorpusUpdate,
    FeedResponse,
    InteractionState,
    InterestProfile,
    InterestUpdate,
    ProgressUpdate,
)
from feedcore.services.feed import FeedService
from feedcore.services.interests import InterestProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["feed"])


@router.get(
    "/feed",
    response_model=FeedResponse,
    summary="Get Ranked Feed",
    description="""
    Retrieve the viewing order for a user.

    Unwatched videos are ranked by interest and trending boosts with random
    jitter; once everything is watched the feed recycles watched videos; a
    non-empty corpus always produces a non-empty feed.

    The order is held for a short window so the feed does not reshuffle under
    the user; pass `refresh=true` to re-rank immediately.
    """,
    responses={
        200: {"description": "Ranked feed returned successfully"},
        304: {"description": "Feed not modified"},
    },
)
async def get_feed(
    response: Response,
    user_id: str = Query(..., min_length=1, description="User identifier"),
    limit: Optional[int] = Query(default=None, ge=1, description="Items to return"),
    refresh: bool = Query(default=False, description="Force a re-rank"),
    if_none_match: Optional[str] = Header(
        default=None,
        description="ETag from previous response",
    ),
    feed_service: FeedService = Depends(get_feed_service),
) -> FeedResponse:
    settings = get_settings()
    effective_limit = min(limit or settings.DEFAULT_FEED_LIMIT, settings.MAX_FEED_LIMIT)

    feed_response = await feed_service.get_feed(
        user_id=user_id,
        limit=effective_limit,
        refresh=refresh,
    )

    # -------------------------------------------------------------------------
    # ETag / 304 Logic
    # -------------------------------------------------------------------------
    etag: Optional[str] = None
    if feed_response.items:
        content_str = ",".join(item.id for item in feed_response.items)
        etag_hash = hashlib.md5(content_str.encode()).hexdigest()[:16]
        etag = f'W/"{etag_hash}"'
        response.headers["ETag"] = etag

    if if_none_match and etag and if_none_match == etag:
        return Response(status_code=status.HTTP_304_NOT_MODIFIED)

    # Per-user and reshuffled over time: never shared, always revalidated
    response.headers["Cache-Control"] = "private, no-cache"
    response.headers["X-Feed-Mode"] = feed_response.mode

    return feed_response


@router.put("/corpus", summary="Replace Corpus")
async def replace_corpus(
    update: CorpusUpdate,
    feed_service: FeedService = Depends(get_feed_service),
) -> dict:
    """Store a fresh corpus and start warming its first videos."""
    count = await feed_service.replace_corpus(update.videos)
    return {"videos": count}


# =============================================================================
# Interactions
# =============================================================================


@router.get("/users/{user_id}/interactions", response_model=InteractionState)
async def get_interactions(
    user_id: str,
    feed_service: FeedService = Depends(get_feed_service),
) -> InteractionState:
    return await feed_service.get_interactions(user_id)


@router.post("/users/{user_id}/likes/{video_id}", response_model=InteractionState)
async def toggle_like(
    user_id: str,
    video_id: str,
    feed_service: FeedService = Depends(get_feed_service),
) -> InteractionState:
    """Like a video, or unlike it if already liked."""
    return await feed_service.toggle_like(user_id, video_id)


@router.post("/users/{user_id}/dislikes/{video_id}", response_model=InteractionState)
async def dislike(
    user_id: str,
    video_id: str,
    feed_service: FeedService = Depends(get_feed_service),
) -> InteractionState:
    """Hide a video from the feed."""
    return await feed_service.dislike(user_id, video_id)


@router.delete("/users/{user_id}/dislikes/{video_id}", response_model=InteractionState)
async def restore(
    user_id: str,
    video_id: str,
    feed_service: FeedService = Depends(get_feed_service),
) -> InteractionState:
    """Bring a hidden video back."""
    return await feed_service.restore(user_id, video_id)


@router.post("/users/{user_id}/saves/{video_id}", response_model=InteractionState)
async def toggle_save(
    user_id: str,
    video_id: str,
    feed_service: FeedService = Depends(get_feed_service),
) -> InteractionState:
    return await feed_service.toggle_save(user_id, video_id)


@router.put("/users/{user_id}/progress/{video_id}", response_model=InteractionState)
async def record_progress(
    user_id: str,
    video_id: str,
    update: ProgressUpdate,
    feed_service: FeedService = Depends(get_feed_service),
) -> InteractionState:
    return await feed_service.record_progress(user_id, video_id, update.progress)


# =============================================================================
# Interests
# =============================================================================


@router.get("/users/{user_id}/interests", response_model=List[str])
async def get_interests(
    user_id: str,
    interests: InterestProfileService = Depends(get_interest_service),
) -> List[str]:
    return await interests.get_interests(user_id)


@router.post("/users/{user_id}/interests", response_model=List[str])
async def record_interest(
    user_id: str,
    update: InterestUpdate,
    interests: InterestProfileService = Depends(get_interest_service),
) -> List[str]:
    await interests.record_interest(user_id, update.category)
    return await interests.get_interests(user_id)


@router.post("/users/{user_id}/interests/sync", response_model=InterestProfile)
async def sync_interests(
    user_id: str,
    interests: InterestProfileService = Depends(get_interest_service),
) -> InterestProfile:
    """Merge the remote profile copy into the local one."""
    return await interests.sync(user_id)
