"""
Prefetch engine.

Warms playback by storing the first chunk of media files and whole poster
images. Every operation is best effort: failures are logged and swallowed,
and callers fall back to the network URL on a miss.
"""
import asyncio
import logging
from typing import List, Optional, Sequence, Set

import httpx

from feedcore.core.blob_cache import BlobCache
from feedcore.core.exceptions import CacheError
from feedcore.models.schemas import CacheEntry, VideoItem

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_BYTES = 1536 * 1024
DEFAULT_MEDIA_TYPE = "video/mp4"
DEFAULT_IMAGE_TYPE = "image/jpeg"


def is_fetchable_url(url: Optional[str]) -> bool:
    """Only well-formed absolute http(s) URLs with a host are buffered."""
    if not url:
        return False
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, ValueError, TypeError):
        return False
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.host)


class PrefetchEngine:
    """
    Chunked media and image prefetcher over two cache buckets.

    Usage:
        engine = PrefetchEngine(client, media_cache, image_cache)
        tasks = engine.seed_initial_buffer(corpus)   # fire and forget
        src = engine.resolve_cached_media_src(url) or url
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        media_cache: BlobCache,
        image_cache: BlobCache,
        chunk_bytes: int = DEFAULT_CHUNK_BYTES,
        max_concurrent_fetches: int = 4,
        trending_seed: int = 3,
        newest_seed: int = 5,
    ) -> None:
        """
        Initialize the engine.

        Args:
            client: Shared HTTP client (owns timeouts and connection pooling)
            media_cache: Bucket for partial media chunks
            image_cache: Bucket for whole images
            chunk_bytes: Upper bound of bytes stored per media URL
            max_concurrent_fetches: Simultaneous downloads allowed
            trending_seed: Trending videos warmed by seed_initial_buffer
            newest_seed: Leading corpus videos warmed by seed_initial_buffer
        """
        self._client = client
        self._media = media_cache
        self._images = image_cache
        self._chunk_bytes = chunk_bytes
        self._semaphore = asyncio.Semaphore(max_concurrent_fetches)
        self._trending_seed = trending_seed
        self._newest_seed = newest_seed
        self._pending: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def has_media_chunk(self, url: str) -> bool:
        """Check the media-chunk bucket."""
        return is_fetchable_url(url) and self._media.has(url)

    def has_image(self, url: str) -> bool:
        """Check the image bucket."""
        return is_fetchable_url(url) and self._images.has(url)

    def resolve_cached_media_src(self, url: str) -> Optional[str]:
        """Local URI for the buffered chunk, or None to use the network URL."""
        if not url:
            return None
        return self._media.locate(url)

    def read_cached_media(self, url: str) -> Optional[CacheEntry]:
        """Buffered media bytes for url, or None."""
        if not url:
            return None
        return self._media.get(url)

    def read_cached_image(self, url: str) -> Optional[CacheEntry]:
        """Buffered image bytes for url, or None."""
        if not url:
            return None
        return self._images.get(url)

    @property
    def pending(self) -> int:
        """Number of background buffer tasks still running."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # Buffering
    # ------------------------------------------------------------------

    async def buffer_media_chunk(self, url: str) -> bool:
        """
        Store the first chunk of a media file.

        Returns:
            True if a new entry was written, False otherwise (including failures)
        """
        if not is_fetchable_url(url) or self._media.has(url):
            return False

        headers = {
            "Range": f"bytes=0-{self._chunk_bytes - 1}",
            "Cache-Control": "no-store",
        }
        try:
            async with self._semaphore:
                status, content_type, payload = await self._fetch_bounded(url, headers)
                if status == 416:
                    # Range not honored for this object; take the head of a plain GET
                    status, content_type, payload = await self._fetch_bounded(
                        url, {"Cache-Control": "no-store"}
                    )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning(f"Media prefetch failed: {exc}", extra={"url": url})
            return False

        if status not in (200, 206):
            logger.warning(
                f"Media prefetch got status {status}", extra={"url": url}
            )
            return False

        return self._store(
            self._media, url, payload, content_type or DEFAULT_MEDIA_TYPE
        )

    async def buffer_image(self, url: str) -> bool:
        """
        Store a whole image.

        Returns:
            True if a new entry was written, False otherwise (including failures)
        """
        if not is_fetchable_url(url) or self._images.has(url):
            return False

        try:
            async with self._semaphore:
                response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            logger.warning(f"Image prefetch failed: {exc}", extra={"url": url})
            return False

        if not response.is_success:
            logger.warning(
                f"Image prefetch got status {response.status_code}",
                extra={"url": url},
            )
            return False

        content_type = _media_type(response.headers.get("content-type"))
        return self._store(
            self._images, url, response.content, content_type or DEFAULT_IMAGE_TYPE
        )

    def seed_initial_buffer(self, corpus: Sequence[VideoItem]) -> List[asyncio.Task]:
        """
        Warm the first few videos in the background.

        Seed set: the first trending videos plus the first videos in corpus
        order, deduplicated by id. Must be called from a running event loop.
        Returns the scheduled tasks; callers are not expected to await them.
        """
        if not corpus:
            return []

        trending = [v for v in corpus if v.is_trending][: self._trending_seed]
        newest = list(corpus[: self._newest_seed])

        seen = set()
        tasks: List[asyncio.Task] = []
        for video in trending + newest:
            if video.id in seen:
                continue
            seen.add(video.id)
            if video.source_url:
                tasks.append(self._spawn(self.buffer_media_chunk(video.source_url)))
            if video.poster_url:
                tasks.append(self._spawn(self.buffer_image(video.poster_url)))

        logger.info(f"Seeded prefetch for {len(seen)} videos ({len(tasks)} fetches)")
        return tasks

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _fetch_bounded(self, url: str, headers: dict):
        """
        GET url and read at most chunk_bytes of the body.

        Servers that ignore Range reply 200 with the whole object; the read
        stops at the bound either way.
        """
        async with self._client.stream("GET", url, headers=headers) as response:
            if response.status_code not in (200, 206):
                return response.status_code, None, b""

            chunks = []
            received = 0
            async for chunk in response.aiter_bytes():
                remaining = self._chunk_bytes - received
                chunks.append(chunk[:remaining])
                received += min(len(chunk), remaining)
                if received >= self._chunk_bytes:
                    break

            content_type = _media_type(response.headers.get("content-type"))
            return response.status_code, content_type, b"".join(chunks)

    @staticmethod
    def _store(cache: BlobCache, url: str, payload: bytes, content_type: str) -> bool:
        try:
            written = cache.put(url, payload, content_type)
        except CacheError as exc:
            logger.warning(
                f"Prefetch store failed: {exc.message}",
                extra={"url": url, "bucket": cache.bucket},
            )
            return False
        if written:
            logger.debug(
                f"Buffered {len(payload)} bytes",
                extra={"url": url, "bucket": cache.bucket},
            )
        return written


def _media_type(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return raw.split(";", 1)[0].strip().lower() or None
