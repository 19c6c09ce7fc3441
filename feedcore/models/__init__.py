"""Models package - domain entities and interfaces."""
from .interfaces import (
    AudioPlayer,
    CorpusRepository,
    InteractionRepository,
    KeyPoolConfigStore,
    PlaybackHandle,
    ProfileRepository,
)
from .schemas import (
    BufferRequest,
    BufferResponse,
    CacheEntry,
    CorpusUpdate,
    ErrorResponse,
    FeedResponse,
    InteractionState,
    InterestProfile,
    InterestUpdate,
    KeyPoolConfig,
    KeyPoolUpdate,
    KeyRecord,
    KeyStatus,
    KeyStatusResponse,
    ProgressUpdate,
    ResolvedKey,
    VideoItem,
)

__all__ = [
    # Interfaces
    "AudioPlayer",
    "CorpusRepository",
    "InteractionRepository",
    "KeyPoolConfigStore",
    "PlaybackHandle",
    "ProfileRepository",
    # Schemas
    "BufferRequest",
    "BufferResponse",
    "CacheEntry",
    "CorpusUpdate",
    "ErrorResponse",
    "FeedResponse",
    "InteractionState",
    "InterestProfile",
    "InterestUpdate",
    "KeyPoolConfig",
    "KeyPoolUpdate",
    "KeyRecord",
    "KeyStatus",
    "KeyStatusResponse",
    "ProgressUpdate",
    "ResolvedKey",
    "VideoItem",
]
