"""Core infrastructure components."""
from .blob_cache import BlobCache, FileSystemBlobCache, InMemoryBlobCache
from .cache import ExpiringCache
from .exceptions import (
    AppException,
    CacheError,
    KeyPoolEmptyError,
    KeyRejectedError,
    NarrationProviderError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AppException",
    "BlobCache",
    "CacheError",
    "ExpiringCache",
    "FileSystemBlobCache",
    "InMemoryBlobCache",
    "KeyPoolEmptyError",
    "KeyRejectedError",
    "NarrationProviderError",
    "NotFoundError",
    "ValidationError",
]
