"""
Feed service - host-side orchestrator.
Coordinates corpus, interactions and interests with the ranker and the prefetch engine.
"""
import logging
import time
from typing import List, Optional, Tuple

from feedcore.core.cache import ExpiringCache
from feedcore.core.exceptions import NotFoundError
from feedcore.models.interfaces import CorpusRepository, InteractionRepository
from feedcore.models.schemas import FeedResponse, InteractionState, VideoItem
from feedcore.services.interests import InterestProfileService
from feedcore.services.prefetch import PrefetchEngine
from feedcore.services.ranking import FeedRanker

logger = logging.getLogger(__name__)


class FeedService:
    """
    Main feed service.

    Responsibilities:
    - Rank the corpus per user and hold the order steady for a short window
    - Apply interaction changes and turn engagement into interest signals
    - Kick off prefetching whenever a fresh corpus arrives
    """

    def __init__(
        self,
        corpus_repo: CorpusRepository,
        interaction_repo: InteractionRepository,
        interests: InterestProfileService,
        ranker: FeedRanker,
        prefetch: Optional[PrefetchEngine] = None,
        reshuffle_interval_sec: float = 15.0,
    ) -> None:
        """
        Initialize feed service with dependencies.

        Args:
            corpus_repo: Repository for the video corpus
            interaction_repo: Repository for per-user interactions
            interests: Interest profile service
            ranker: Feed ranker
            prefetch: Optional prefetch engine seeded on corpus updates
            reshuffle_interval_sec: How long a ranked order is reused
        """
        self._corpus_repo = corpus_repo
        self._interaction_repo = interaction_repo
        self._interests = interests
        self._ranker = ranker
        self._prefetch = prefetch
        self._snapshots: ExpiringCache[Tuple[List[str], str]] = ExpiringCache(
            ttl_seconds=reshuffle_interval_sec
        )

    # =========================================================================
    # Feed
    # =========================================================================

    async def get_feed(
        self,
        user_id: str,
        limit: int = 50,
        refresh: bool = False,
    ) -> FeedResponse:
        """
        Get the ranked feed for a user.

        Args:
            user_id: User identifier
            limit: Maximum items to return
            refresh: Force a re-rank even inside the reshuffle window

        Returns:
            FeedResponse with the leading items of the ranked feed
        """
        start_time = time.time()
        corpus = await self._corpus_repo.get_corpus()
        by_id = {video.id: video for video in corpus}

        snapshot = None if refresh else self._snapshots.get(user_id)
        if snapshot is not None:
            ids, mode = snapshot
            interactions = await self._interaction_repo.get_interactions(user_id)
            # Drop videos that left the corpus or were hidden since ranking
            ranked = [
                by_id[vid] for vid in ids
                if vid in by_id and vid not in interactions.disliked_ids
            ]
            if ranked or not corpus:
                return FeedResponse(items=ranked[:limit], total=len(ranked), mode=mode)

        interactions = await self._interaction_repo.get_interactions(user_id)
        interests = await self._interests.get_interests(user_id)
        ranked, mode = self._ranker.rank_with_mode(corpus, interactions, interests)
        self._snapshots.set(user_id, ([video.id for video in ranked], mode))

        elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Feed ranked: items={len(ranked)}, mode={mode}, "
            f"elapsed_ms={elapsed_ms:.2f}",
            extra={"user_id": user_id},
        )
        return FeedResponse(items=ranked[:limit], total=len(ranked), mode=mode)

    async def replace_corpus(self, videos: List[VideoItem]) -> int:
        """Store a fresh corpus, invalidate rankings and warm the first videos."""
        await self._corpus_repo.replace_corpus(videos)
        self._snapshots.clear()
        if self._prefetch is not None:
            self._prefetch.seed_initial_buffer(videos)
        logger.info(f"Corpus replaced with {len(videos)} videos")
        return len(videos)

    async def seed_prefetch(self) -> None:
        """Warm the current corpus (application startup)."""
        if self._prefetch is None:
            return
        corpus = await self._corpus_repo.get_corpus()
        self._prefetch.seed_initial_buffer(corpus)

    # =========================================================================
    # Interactions
    # =========================================================================

    async def get_interactions(self, user_id: str) -> InteractionState:
        return await self._interaction_repo.get_interactions(user_id)

    async def toggle_like(self, user_id: str, video_id: str) -> InteractionState:
        video = await self._require_video(video_id)
        state = await self._interaction_repo.get_interactions(user_id)
        if state.toggle_like(video_id):
            await self._interests.record_interest(user_id, video.category)
        await self._interaction_repo.save_interactions(user_id, state)
        return state

    async def dislike(self, user_id: str, video_id: str) -> InteractionState:
        await self._require_video(video_id)
        state = await self._interaction_repo.get_interactions(user_id)
        state.dislike(video_id)
        await self._interaction_repo.save_interactions(user_id, state)
        return state

    async def restore(self, user_id: str, video_id: str) -> InteractionState:
        state = await self._interaction_repo.get_interactions(user_id)
        state.restore(video_id)
        await self._interaction_repo.save_interactions(user_id, state)
        return state

    async def toggle_save(self, user_id: str, video_id: str) -> InteractionState:
        await self._require_video(video_id)
        state = await self._interaction_repo.get_interactions(user_id)
        state.toggle_save(video_id)
        await self._interaction_repo.save_interactions(user_id, state)
        return state

    async def record_progress(
        self,
        user_id: str,
        video_id: str,
        progress: float,
    ) -> InteractionState:
        """Store playback progress; watching a video counts as interest in its category."""
        video = await self._require_video(video_id)
        state = await self._interaction_repo.get_interactions(user_id)
        state.record_progress(video_id, progress)
        await self._interaction_repo.save_interactions(user_id, state)
        await self._interests.record_interest(user_id, video.category)
        return state

    async def _require_video(self, video_id: str) -> VideoItem:
        corpus = await self._corpus_repo.get_corpus()
        for video in corpus:
            if video.id == video_id:
                return video
        raise NotFoundError("Video", video_id)
