"""
Key pool client for the quota-limited narration provider.

Credentials live in a shared, persisted pool. The client probes their
quota, orders them for admins, resolves the key to use for a request and
rotates past keys the provider rejects.
"""
import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel

from feedcore.core.exceptions import (
    KeyPoolEmptyError,
    KeyRejectedError,
    NarrationProviderError,
)
from feedcore.models.interfaces import KeyPoolConfigStore
from feedcore.models.schemas import KeyRecord, KeyStatus, ResolvedKey

logger = logging.getLogger(__name__)

AUTH_HEADER = "xi-api-key"
ROTATE_STATUSES = frozenset({401, 402, 429})


class VoiceSettings(BaseModel):
    """Fixed voice and style parameters sent with every synthesis call."""

    voice_id: str
    model_id: str
    stability: float = 0.45
    similarity_boost: float = 0.8
    style: float = 0.6
    use_speaker_boost: bool = True

    def request_body(self, text: str) -> dict:
        return {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": self.stability,
                "similarity_boost": self.similarity_boost,
                "style": self.style,
                "use_speaker_boost": self.use_speaker_boost,
            },
        }


class KeyPoolClient:
    """
    Credential pool operations against the narration provider.

    Probing is strictly sequential so the provider's own rate limits are
    respected. The rotation index is only ever advanced, never reset, except
    when an admin saves a new key list.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        store: KeyPoolConfigStore,
        voice: VoiceSettings,
        base_url: str = "https://api.elevenlabs.io",
        active_min_remaining: int = 100,
        min_key_length: int = 10,
        probe_timeout_sec: float = 10.0,
        synthesis_timeout_sec: float = 15.0,
    ) -> None:
        """
        Initialize the client.

        Args:
            client: Shared HTTP client
            store: Persisted pool document
            voice: Voice/model parameters for synthesis
            base_url: Provider root URL
            active_min_remaining: Characters a key needs to count as active
            min_key_length: Shorter entries are treated as junk and skipped
            probe_timeout_sec: Timeout for quota probes
            synthesis_timeout_sec: Timeout for synthesis calls
        """
        self._client = client
        self._store = store
        self._voice = voice
        self._base_url = base_url.rstrip("/")
        self._active_min_remaining = active_min_remaining
        self._min_key_length = min_key_length
        self._probe_timeout = probe_timeout_sec
        self._synthesis_timeout = synthesis_timeout_sec

    # =========================================================================
    # Quota probing
    # =========================================================================

    async def probe(self, key: str) -> KeyRecord:
        """Query the quota endpoint for one key. Never raises."""
        try:
            response = await self._client.get(
                f"{self._base_url}/v1/user/subscription",
                headers={AUTH_HEADER: key},
                timeout=self._probe_timeout,
            )
            if not response.is_success:
                logger.info(f"Key probe returned {response.status_code}")
                return KeyRecord(key=key)
            data = response.json()
            used = int(data.get("character_count") or 0)
            limit = int(data.get("character_limit") or 0)
        except (httpx.HTTPError, ValueError, TypeError, AttributeError) as exc:
            logger.warning(f"Key probe failed: {exc}")
            return KeyRecord(key=key)

        remaining = limit - used
        status = (
            KeyStatus.ACTIVE
            if remaining > self._active_min_remaining
            else KeyStatus.EMPTY
        )
        return KeyRecord(
            key=key, used=used, limit=limit, remaining=remaining, status=status
        )

    async def probe_all(self, keys: List[str]) -> List[KeyRecord]:
        """Probe usable keys one after another, in the given order."""
        records = []
        for key in self._usable(keys):
            records.append(await self.probe(key))
        return records

    async def reorder(self, keys: List[str]) -> List[str]:
        """
        Order keys for use: active first by most remaining quota, then the rest.

        The persisted pool and index are not touched.
        """
        records = await self.probe_all(keys)
        return [record.key for record in self.sort_records(records)]

    @staticmethod
    def sort_records(records: List[KeyRecord]) -> List[KeyRecord]:
        """Stable sort: active by descending remaining, non-active keep order."""
        return sorted(
            records,
            key=lambda r: (
                r.status != KeyStatus.ACTIVE,
                -r.remaining if r.status == KeyStatus.ACTIVE else 0,
            ),
        )

    # =========================================================================
    # Pool administration
    # =========================================================================

    async def save_keys(self, keys: List[str]) -> List[str]:
        """Replace the pool with the usable, deduplicated keys; index resets to 0."""
        usable = self._usable(keys)
        config = await self._store.save(usable)
        logger.info(f"Key pool saved with {len(config.keys)} keys")
        return config.keys

    async def optimize(self) -> List[str]:
        """Probe the stored pool, reorder it and save the new order."""
        config = await self._store.load()
        if not config.keys:
            raise KeyPoolEmptyError()
        ordered = await self.reorder(config.keys)
        return await self.save_keys(ordered)

    # =========================================================================
    # Request-time key selection
    # =========================================================================

    async def current_key(self) -> Optional[ResolvedKey]:
        """Key at the persisted index, wrapping around the pool; None if empty."""
        config = await self._store.load()
        if not config.keys:
            return None
        position = config.current_index % len(config.keys)
        return ResolvedKey(
            key=config.keys[position],
            index=config.current_index,
            pool_size=len(config.keys),
        )

    async def rotate(self, from_index: int) -> int:
        """
        Move past the key at from_index.

        The write is conditional, so clients that failed on the same key
        advance the index once between them.
        """
        new_index = await self._store.advance_index(from_index)
        logger.warning(
            f"Rotated narration key index {from_index} -> {new_index}",
            extra={"key_index": new_index},
        )
        return new_index

    # =========================================================================
    # Synthesis
    # =========================================================================

    async def synthesize(self, key: str, text: str) -> bytes:
        """
        Convert text to audio with one key.

        Raises:
            KeyRejectedError: Provider answered 401, 402 or 429
            NarrationProviderError: Any other non-2xx status
            httpx.HTTPError: Transport failure or timeout
        """
        response = await self._client.post(
            f"{self._base_url}/v1/text-to-speech/{self._voice.voice_id}/stream",
            headers={
                "Accept": "audio/mpeg",
                "Content-Type": "application/json",
                AUTH_HEADER: key,
            },
            json=self._voice.request_body(text),
            timeout=self._synthesis_timeout,
        )
        if response.status_code in ROTATE_STATUSES:
            raise KeyRejectedError(response.status_code)
        if not response.is_success:
            raise NarrationProviderError(response.status_code, response.reason_phrase)
        return response.content

    def _usable(self, keys: List[str]) -> List[str]:
        usable = []
        for key in keys:
            key = (key or "").strip()
            if len(key) < self._min_key_length or key in usable:
                continue
            usable.append(key)
        return usable
