"""Repository implementations package."""
from .memory import (
    InMemoryCorpusRepository,
    InMemoryInteractionRepository,
    InMemoryKeyPoolConfigStore,
    InMemoryProfileRepository,
)

__all__ = [
    "InMemoryCorpusRepository",
    "InMemoryInteractionRepository",
    "InMemoryKeyPoolConfigStore",
    "InMemoryProfileRepository",
]
