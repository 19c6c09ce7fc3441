"""
Repository and collaborator interfaces (abstractions).
Using Protocol for structural subtyping (duck typing with type hints).
These define the contracts the host application's implementations must follow.
"""
from typing import Callable, List, Optional, Protocol, runtime_checkable

from feedcore.models.schemas import (
    InteractionState,
    InterestProfile,
    KeyPoolConfig,
    VideoItem,
)


@runtime_checkable
class CorpusRepository(Protocol):
    """
    Interface for the video corpus.
    Production: managed document store.
    Testing: In-memory implementation.
    """

    async def get_corpus(self) -> List[VideoItem]:
        """Fetch the full corpus in publication order (may be empty)."""
        ...

    async def replace_corpus(self, videos: List[VideoItem]) -> None:
        """Swap in a fresh corpus."""
        ...


@runtime_checkable
class InteractionRepository(Protocol):
    """Interface for per-user interaction snapshots."""

    async def get_interactions(self, user_id: str) -> InteractionState:
        """
        Fetch interactions for a user.

        Returns:
            Stored state, or an empty state for unknown users
        """
        ...

    async def save_interactions(self, user_id: str, state: InteractionState) -> None:
        """Persist interactions for a user."""
        ...


@runtime_checkable
class ProfileRepository(Protocol):
    """
    Interface for interest profiles.
    The same contract backs both the device-local copy and the remote copy.
    """

    async def get_profile(self, user_id: str) -> Optional[InterestProfile]:
        """Fetch a profile, None if never stored."""
        ...

    async def save_profile(self, profile: InterestProfile) -> None:
        """Persist a profile, replacing any previous copy."""
        ...


@runtime_checkable
class KeyPoolConfigStore(Protocol):
    """
    Interface for the shared narration key pool document.
    Production: document store shared by every client.
    """

    async def load(self) -> KeyPoolConfig:
        """Read the current pool (empty pool if never configured)."""
        ...

    async def save(self, keys: List[str]) -> KeyPoolConfig:
        """Replace the key list and reset the rotation index to 0."""
        ...

    async def advance_index(self, expected_index: int) -> int:
        """
        Advance the rotation index by one if it still equals expected_index.

        Returns:
            The index stored after the call
        """
        ...


@runtime_checkable
class PlaybackHandle(Protocol):
    """A running audio playback owned by the narration service."""

    def stop(self) -> None:
        """Stop immediately and release audio resources."""
        ...


@runtime_checkable
class AudioPlayer(Protocol):
    """
    Host-supplied audio output.

    The player decodes and plays the bytes. It must call on_started once
    audio is audible and on_finished when playback ends or is paused.
    """

    def play(
        self,
        audio: bytes,
        on_started: Callable[[], None],
        on_finished: Callable[[], None],
    ) -> PlaybackHandle:
        ...
