"""
Domain models using Pydantic.
All data structures shared by the ranking, prefetch and narration engines.
"""
import math
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_validator

WATCHED_THRESHOLD = 0.8


# =============================================================================
# Domain Models (Internal)
# =============================================================================


class VideoItem(BaseModel):
    """
    Video entry from the externally owned corpus.
    The engines only read it.
    """

    id: str = Field(..., description="Unique video identifier")
    title: str = Field(default="", description="Video title")
    category: str = Field(default="", description="Editorial category")
    is_trending: bool = Field(default=False, description="Trending flag")
    source_url: str = Field(default="", description="Playback media URL")
    poster_url: str = Field(default="", description="Thumbnail image URL")
    video_type: str = Field(default="Shorts", description="Shorts or Long Video")


class InteractionState(BaseModel):
    """
    Per-user interaction snapshot.
    Liked and disliked are mutually exclusive; the mutators keep them so.
    """

    liked_ids: Set[str] = Field(default_factory=set)
    disliked_ids: Set[str] = Field(default_factory=set)
    saved_ids: Set[str] = Field(default_factory=set)
    watch_history: Dict[str, float] = Field(
        default_factory=dict,
        description="Video ID -> playback progress (0.0-1.0)",
    )

    @field_validator("liked_ids", "disliked_ids", "saved_ids", mode="before")
    @classmethod
    def _none_as_empty_set(cls, value):
        return set() if value is None else value

    @field_validator("watch_history", mode="before")
    @classmethod
    def _coerce_history(cls, value):
        if value is None:
            return {}
        # Accept the [{"id": ..., "progress": ...}] shape as well
        if isinstance(value, list):
            return {
                entry["id"]: entry.get("progress", 0.0)
                for entry in value
                if isinstance(entry, dict) and "id" in entry
            }
        return value

    def is_watched(self, video_id: str) -> bool:
        """A video counts as watched past 80% progress."""
        return self.watch_history.get(video_id, 0.0) > WATCHED_THRESHOLD

    def toggle_like(self, video_id: str) -> bool:
        """Like or unlike; returns True if the video is liked afterwards."""
        if video_id in self.liked_ids:
            self.liked_ids.discard(video_id)
            return False
        self.liked_ids.add(video_id)
        self.disliked_ids.discard(video_id)
        return True

    def dislike(self, video_id: str) -> None:
        """Hide a video; also drops any like."""
        self.disliked_ids.add(video_id)
        self.liked_ids.discard(video_id)

    def restore(self, video_id: str) -> None:
        """Undo a dislike."""
        self.disliked_ids.discard(video_id)

    def toggle_save(self, video_id: str) -> bool:
        """Save or unsave; returns True if saved afterwards."""
        if video_id in self.saved_ids:
            self.saved_ids.discard(video_id)
            return False
        self.saved_ids.add(video_id)
        return True

    def record_progress(self, video_id: str, progress: float) -> float:
        """Store playback progress clamped to [0, 1]; NaN counts as unwatched."""
        if math.isnan(progress):
            progress = 0.0
        clamped = max(0.0, min(1.0, progress))
        self.watch_history[video_id] = clamped
        return clamped


class InterestProfile(BaseModel):
    """Ordered set of categories a user showed interest in."""

    user_id: str = Field(..., description="User identifier")
    interests: List[str] = Field(default_factory=list)

    def add(self, category: str) -> bool:
        """Append category if new; returns True if the profile grew."""
        if not category or category in self.interests:
            return False
        self.interests.append(category)
        return True

    def merge(self, other: List[str]) -> bool:
        """Union in another copy, keeping this profile's order first."""
        grew = False
        for category in other:
            grew = self.add(category) or grew
        return grew


class CacheEntry(BaseModel):
    """Bytes stored for one source URL in one bucket."""

    key: str
    payload: bytes
    content_type: str
    size: int


class KeyStatus(str, Enum):
    """Probe outcome for a narration credential."""
    ACTIVE = "active"
    EMPTY = "empty"
    ERROR = "error"


class KeyRecord(BaseModel):
    """Quota snapshot derived from a probe. Never persisted."""

    key: str
    used: int = 0
    limit: int = 0
    remaining: int = -1  # -1 is a sentinel for "unknown", not a quota
    status: KeyStatus = KeyStatus.ERROR

    @property
    def masked_key(self) -> str:
        """Key with everything but the last four characters hidden."""
        return f"...{self.key[-4:]}" if len(self.key) > 4 else "****"


class KeyPoolConfig(BaseModel):
    """Persisted credential pool shared by every client."""

    keys: List[str] = Field(default_factory=list)
    current_index: int = Field(default=0, ge=0)
    version: int = Field(default=0, description="Bumped on every write")


class ResolvedKey(BaseModel):
    """Credential selected for one narration attempt."""

    key: str
    index: int = Field(..., description="Raw persisted index used for rotation")
    pool_size: int


# =============================================================================
# API Models (External)
# =============================================================================


class FeedResponse(BaseModel):
    """Feed endpoint response."""

    items: List[VideoItem] = Field(..., description="Videos in viewing order")
    total: int = Field(..., description="Length of the full ranked feed")
    mode: str = Field(..., description="personalized, recycle or safety_net")


class CorpusUpdate(BaseModel):
    """Replacement corpus pushed by the host."""

    videos: List[VideoItem]


class ProgressUpdate(BaseModel):
    """Playback progress report."""

    progress: float = Field(
        ...,
        allow_inf_nan=False,
        description="0.0-1.0, values outside are clamped",
    )


class InterestUpdate(BaseModel):
    """Explicit interest signal."""

    category: str = Field(..., min_length=1)


class BufferRequest(BaseModel):
    """Ask the prefetch engine to warm a media URL and/or a poster."""

    source_url: Optional[str] = None
    poster_url: Optional[str] = None


class BufferResponse(BaseModel):
    """Result of a buffer request."""

    media_cached: bool
    image_cached: bool


class KeyPoolUpdate(BaseModel):
    """Replacement credential list."""

    keys: List[str]


class KeyStatusResponse(BaseModel):
    """Admin view of one probed key."""

    key: str = Field(..., description="Masked key")
    used: int
    limit: int
    remaining: int
    status: KeyStatus


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: Dict[str, object] = Field(..., description="Error details")
