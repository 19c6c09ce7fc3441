"""
In-memory repository implementations.
Used for prototyping and testing.
Production would replace these with document-store implementations.
"""
import asyncio
from typing import Dict, List, Optional

from feedcore.models.schemas import (
    InteractionState,
    InterestProfile,
    KeyPoolConfig,
    VideoItem,
)


class InMemoryCorpusRepository:
    """
    In-memory implementation of CorpusRepository.
    Simulates the managed video collection.
    """

    def __init__(self, videos: Optional[List[VideoItem]] = None) -> None:
        self._videos: List[VideoItem] = list(videos or [])

    async def get_corpus(self) -> List[VideoItem]:
        """Fetch the full corpus."""
        return list(self._videos)

    async def replace_corpus(self, videos: List[VideoItem]) -> None:
        """Swap in a fresh corpus."""
        self._videos = list(videos)


class InMemoryInteractionRepository:
    """
    In-memory implementation of InteractionRepository.
    Returns copies so callers never mutate stored state by accident.
    """

    def __init__(self) -> None:
        self._states: Dict[str, InteractionState] = {}

    async def get_interactions(self, user_id: str) -> InteractionState:
        """Fetch interactions, empty state for unknown users."""
        state = self._states.get(user_id)
        if state is None:
            return InteractionState()
        return state.model_copy(deep=True)

    async def save_interactions(self, user_id: str, state: InteractionState) -> None:
        """Persist interactions."""
        self._states[user_id] = state.model_copy(deep=True)


class InMemoryProfileRepository:
    """
    In-memory implementation of ProfileRepository.
    Backs both the local and the simulated remote profile copy.
    """

    def __init__(self) -> None:
        self._profiles: Dict[str, InterestProfile] = {}

    async def get_profile(self, user_id: str) -> Optional[InterestProfile]:
        """Fetch a profile, None if never stored."""
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile else None

    async def save_profile(self, profile: InterestProfile) -> None:
        """Persist a profile."""
        self._profiles[profile.user_id] = profile.model_copy(deep=True)


class InMemoryKeyPoolConfigStore:
    """
    In-memory implementation of KeyPoolConfigStore.

    Every write bumps the document version. advance_index is a
    compare-and-set on the rotation index.
    """

    def __init__(self, keys: Optional[List[str]] = None, current_index: int = 0) -> None:
        self._config = KeyPoolConfig(keys=list(keys or []), current_index=current_index)
        self._lock = asyncio.Lock()

    async def load(self) -> KeyPoolConfig:
        """Read the current pool."""
        return self._config.model_copy(deep=True)

    async def save(self, keys: List[str]) -> KeyPoolConfig:
        """Replace the key list and reset the rotation index."""
        async with self._lock:
            self._config = KeyPoolConfig(
                keys=list(keys),
                current_index=0,
                version=self._config.version + 1,
            )
            return self._config.model_copy(deep=True)

    async def advance_index(self, expected_index: int) -> int:
        """Increment the index only if nobody moved it since it was read."""
        async with self._lock:
            if self._config.current_index == expected_index:
                self._config = self._config.model_copy(
                    update={
                        "current_index": expected_index + 1,
                        "version": self._config.version + 1,
                    }
                )
            return self._config.current_index
