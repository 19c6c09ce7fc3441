"""
Byte stores backing the prefetch buffers.

A bucket is one BlobCache instance. Bucket names carry a version suffix;
pointing the engine at a new name is the only invalidation mechanism.
"""
import hashlib
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Lock
from typing import Dict, Optional
from uuid import uuid4

from feedcore.core.exceptions import CacheError
from feedcore.models.schemas import CacheEntry

logger = logging.getLogger(__name__)


def cache_key_digest(key: str) -> str:
    """Stable file-safe name for a cache key."""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class BlobCache(ABC):
    """Abstract interface for a named byte bucket keyed by source URL."""

    def __init__(self, bucket: str) -> None:
        self._bucket = bucket

    @property
    def bucket(self) -> str:
        """Bucket name, including its version tag."""
        return self._bucket

    @abstractmethod
    def has(self, key: str) -> bool:
        """Check whether an entry exists for key."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """Get the stored entry, or None."""
        pass

    @abstractmethod
    def put(self, key: str, payload: bytes, content_type: str) -> bool:
        """
        Store payload under key.

        Returns:
            True if written, False if an entry already existed (no-op)

        Raises:
            CacheError: If the underlying store cannot be written
        """
        pass

    @abstractmethod
    def locate(self, key: str) -> Optional[str]:
        """Return a locally addressable URI for the entry, or None."""
        pass


class InMemoryBlobCache(BlobCache):
    """Thread-safe dict-backed bucket for tests and ephemeral hosts."""

    def __init__(self, bucket: str) -> None:
        super().__init__(bucket)
        self._store: Dict[str, CacheEntry] = {}
        self._lock = Lock()

    def has(self, key: str) -> bool:
        with self._lock:
            return key in self._store

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._store.get(key)

    def put(self, key: str, payload: bytes, content_type: str) -> bool:
        with self._lock:
            if key in self._store:
                return False
            self._store[key] = CacheEntry(
                key=key,
                payload=payload,
                content_type=content_type,
                size=len(payload),
            )
            return True

    def locate(self, key: str) -> Optional[str]:
        if not self.has(key):
            return None
        return f"memory://{self._bucket}/{cache_key_digest(key)}"

    def size(self) -> int:
        """Number of stored entries."""
        with self._lock:
            return len(self._store)


class FileSystemBlobCache(BlobCache):
    """
    Directory-per-bucket store.

    Layout:
        <root>/<bucket>/<sha256>.bin   payload
        <root>/<bucket>/<sha256>.json  {"key", "content_type", "size"}

    Writes go to a temp file and are renamed into place, so readers never
    observe a partially written payload.
    """

    def __init__(self, root: Path, bucket: str) -> None:
        super().__init__(bucket)
        self._dir = Path(root) / bucket
        self._dir.mkdir(parents=True, exist_ok=True)

    def _paths(self, key: str):
        digest = cache_key_digest(key)
        return self._dir / f"{digest}.bin", self._dir / f"{digest}.json"

    def has(self, key: str) -> bool:
        payload_path, meta_path = self._paths(key)
        return payload_path.exists() and meta_path.exists()

    def get(self, key: str) -> Optional[CacheEntry]:
        payload_path, meta_path = self._paths(key)
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            payload = payload_path.read_bytes()
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning(f"Unreadable cache entry in {self._bucket}: {exc}")
            return None
        return CacheEntry(
            key=key,
            payload=payload,
            content_type=meta.get("content_type", "application/octet-stream"),
            size=len(payload),
        )

    def put(self, key: str, payload: bytes, content_type: str) -> bool:
        if self.has(key):
            return False
        payload_path, meta_path = self._paths(key)
        meta = {"key": key, "content_type": content_type, "size": len(payload)}
        try:
            self._atomic_write(payload_path, payload)
            # Metadata last: an entry counts as present only once both exist
            self._atomic_write(meta_path, json.dumps(meta).encode("utf-8"))
        except OSError as exc:
            raise CacheError("put", str(exc)) from exc
        logger.debug(
            f"Cached {len(payload)} bytes in {self._bucket}",
            extra={"url": key, "bucket": self._bucket},
        )
        return True

    def locate(self, key: str) -> Optional[str]:
        payload_path, _ = self._paths(key)
        if not self.has(key):
            return None
        return payload_path.resolve().as_uri()

    @staticmethod
    def _atomic_write(path: Path, data: bytes) -> None:
        tmp_path = path.with_name(f".{path.name}.tmp.{uuid4().hex}")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
