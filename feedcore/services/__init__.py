"""Services package - business logic layer."""
from .feed import FeedService
from .interests import InterestProfileService
from .key_pool import KeyPoolClient, VoiceSettings
from .narration import NarrationService, NarrationState, strip_unspeakable
from .prefetch import PrefetchEngine
from .ranking import (
    FeedRanker,
    InterestScoring,
    ScoringStrategy,
    TrendingScoring,
)

__all__ = [
    "FeedRanker",
    "FeedService",
    "InterestProfileService",
    "InterestScoring",
    "KeyPoolClient",
    "NarrationService",
    "NarrationState",
    "PrefetchEngine",
    "ScoringStrategy",
    "TrendingScoring",
    "VoiceSettings",
    "strip_unspeakable",
]
