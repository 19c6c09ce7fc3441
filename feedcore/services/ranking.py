"""
Feed ranking service.
Turns a corpus plus a user's interaction snapshot into a deduplicated viewing order.
"""
import logging
import random
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional, Sequence, Tuple

from feedcore.models.schemas import InteractionState, VideoItem

logger = logging.getLogger(__name__)

MODE_PERSONALIZED = "personalized"
MODE_RECYCLE = "recycle"
MODE_SAFETY_NET = "safety_net"


# =============================================================================
# Scoring Strategy (Strategy Pattern)
# =============================================================================


class ScoringStrategy(ABC):
    """Abstract base class for additive score boosts."""

    @abstractmethod
    def calculate_boost(
        self,
        video: VideoItem,
        interests: Sequence[str],
    ) -> Tuple[float, str]:
        """
        Calculate a boost value for this strategy.

        Returns:
            Tuple of (boost_value, strategy_name)
        """
        pass


class InterestScoring(ScoringStrategy):
    """Heavy boost for videos in a category the user cares about."""

    def __init__(self, weight: float = 50.0) -> None:
        self._weight = weight

    def calculate_boost(
        self,
        video: VideoItem,
        interests: Sequence[str],
    ) -> Tuple[float, str]:
        boost = self._weight if video.category in interests else 0.0
        return boost, "interest"


class TrendingScoring(ScoringStrategy):
    """Boost videos flagged as trending."""

    def __init__(self, weight: float = 20.0) -> None:
        self._weight = weight

    def calculate_boost(
        self,
        video: VideoItem,
        interests: Sequence[str],
    ) -> Tuple[float, str]:
        return (self._weight if video.is_trending else 0.0), "trending"


# =============================================================================
# Feed Ranker
# =============================================================================


class FeedRanker:
    """
    Stateless feed ranking.

    Unwatched, non-disliked videos are scored (random jitter plus strategy
    boosts) and sorted. Once everything has been watched the watched pool is
    shuffled instead. If both pools are empty the whole corpus is shuffled, so
    a non-empty corpus never yields an empty feed.
    """

    def __init__(
        self,
        scoring_strategies: Optional[List[ScoringStrategy]] = None,
        rng: Optional[random.Random] = None,
        jitter: float = 10.0,
    ) -> None:
        """
        Initialize the ranker.

        Args:
            scoring_strategies: Additive boosts (default: interest + trending)
            rng: Random source; pass a seeded random.Random in tests
            jitter: Upper bound of the uniform base score
        """
        self._strategies = scoring_strategies or [
            InterestScoring(),
            TrendingScoring(),
        ]
        self._rng = rng or random.SystemRandom()
        self._jitter = jitter

    def rank(
        self,
        corpus: Sequence[VideoItem],
        interactions: Optional[InteractionState] = None,
        interests: Optional[Iterable[str]] = None,
    ) -> List[VideoItem]:
        """Rank the corpus for one user. Total over its inputs, never raises."""
        items, _ = self.rank_with_mode(corpus, interactions, interests)
        return items

    def rank_with_mode(
        self,
        corpus: Sequence[VideoItem],
        interactions: Optional[InteractionState] = None,
        interests: Optional[Iterable[str]] = None,
    ) -> Tuple[List[VideoItem], str]:
        """
        Rank the corpus and report which policy produced the order.

        Returns:
            Tuple of (videos, mode) where mode is personalized, recycle or safety_net
        """
        if not corpus:
            return [], MODE_PERSONALIZED

        state = interactions or InteractionState()
        interest_list = list(interests or [])

        unwatched: List[VideoItem] = []
        watched: List[VideoItem] = []
        for video in corpus:
            if video.id in state.disliked_ids:
                continue
            if state.is_watched(video.id):
                watched.append(video)
            else:
                unwatched.append(video)

        if unwatched:
            ranked = self._score_and_sort(unwatched, interest_list)
            mode = MODE_PERSONALIZED
        else:
            ranked = self._shuffled(watched)
            mode = MODE_RECYCLE

        if not ranked:
            # Everything disliked: show something rather than nothing
            ranked = self._shuffled(corpus)
            mode = MODE_SAFETY_NET

        result = self._deduplicate(ranked)

        logger.debug(
            f"Ranked {len(corpus)} videos -> {len(unwatched)} unwatched, "
            f"{len(watched)} watched -> {len(result)} items ({mode})"
        )
        return result, mode

    def _score_and_sort(
        self,
        videos: List[VideoItem],
        interests: List[str],
    ) -> List[VideoItem]:
        """Score every candidate and sort descending."""
        scored = []
        for video in videos:
            score = self._rng.uniform(0.0, self._jitter)
            for strategy in self._strategies:
                boost, _ = strategy.calculate_boost(video, interests)
                score += boost
            scored.append((score, video))

        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [video for _, video in scored]

    def _shuffled(self, videos: Sequence[VideoItem]) -> List[VideoItem]:
        shuffled = list(videos)
        self._rng.shuffle(shuffled)
        return shuffled

    @staticmethod
    def _deduplicate(videos: List[VideoItem]) -> List[VideoItem]:
        """Keep the first occurrence of each id, preserving order."""
        seen = set()
        unique = []
        for video in videos:
            if video.id in seen:
                continue
            seen.add(video.id)
            unique.append(video)
        return unique
