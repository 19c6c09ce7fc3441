"""
Narration service.

Speaks assistant text through the key pool, one session at a time.
Failures never reach the caller; they show up only as the playback state
staying (or going back to) False for subscribers.
"""
import asyncio
import logging
import re
from enum import Enum
from typing import Callable, List, Optional

import httpx

from feedcore.core.exceptions import KeyRejectedError, NarrationProviderError
from feedcore.models.interfaces import AudioPlayer, PlaybackHandle
from feedcore.services.key_pool import KeyPoolClient

logger = logging.getLogger(__name__)

PlaybackListener = Callable[[bool], None]

# Dingbats, private use, pictographs/emoji, misc symbols, variation selectors, ZWJ
_UNSPEAKABLE = re.compile(
    "["
    "\u2011-\u26ff"
    "\u2700-\u27bf"
    "\ue000-\uf8ff"
    "\ufe00-\ufe0f"
    "\u200d"
    "\U0001f000-\U0001f7ff"
    "\U0001f900-\U0001f9ff"
    "]"
)


def strip_unspeakable(text: Optional[str]) -> str:
    """Drop decorative glyphs and emoji, then trim."""
    if not text:
        return ""
    return _UNSPEAKABLE.sub("", text).strip()


class NarrationState(Enum):
    """Playback session states."""
    IDLE = "idle"
    REQUESTING = "requesting"
    PLAYING = "playing"


class NarrationService:
    """
    Single-flight narration playback.

    Usage:
        narrator = NarrationService(key_pool, player)
        unsubscribe = narrator.subscribe(lambda playing: ui.set_speaking(playing))
        await narrator.speak("...")
        narrator.dispose()
    """

    def __init__(
        self,
        key_pool: KeyPoolClient,
        player: AudioPlayer,
        max_retries: int = 3,
    ) -> None:
        """
        Initialize the service.

        Args:
            key_pool: Credential pool and provider client
            player: Host audio output
            max_retries: Key rotations retried after the first attempt
        """
        self._key_pool = key_pool
        self._player = player
        self._max_retries = max_retries
        self._listeners: List[PlaybackListener] = []
        self._state = NarrationState.IDLE
        self._handle: Optional[PlaybackHandle] = None
        self._session = 0
        # Serializes attempts so retries never race the persisted index
        self._request_lock = asyncio.Lock()

    @property
    def state(self) -> NarrationState:
        """Current session state."""
        return self._state

    # =========================================================================
    # Subscribers
    # =========================================================================

    def subscribe(self, listener: PlaybackListener) -> Callable[[], None]:
        """Register a playback-state listener; returns its unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, playing: bool) -> None:
        for listener in list(self._listeners):
            try:
                listener(playing)
            except Exception:
                logger.exception("Narration listener failed")

    # =========================================================================
    # Session control
    # =========================================================================

    def cancel(self) -> None:
        """Stop any request or playback now and notify False."""
        was_active = self._state != NarrationState.IDLE
        self._session += 1
        handle, self._handle = self._handle, None
        self._state = NarrationState.IDLE
        if handle is not None:
            try:
                handle.stop()
            except Exception:
                logger.exception("Failed to stop narration playback")
        if was_active:
            self._notify(False)

    def dispose(self) -> None:
        """Cancel playback and drop every subscriber."""
        self.cancel()
        self._listeners.clear()

    async def speak(self, text: str) -> bool:
        """
        Narrate text, replacing whatever is currently playing.

        Returns:
            True if playback started, False on any silent abort
        """
        self.cancel()

        clean_text = strip_unspeakable(text)
        if not clean_text:
            return False

        session = self._session
        self._state = NarrationState.REQUESTING

        async with self._request_lock:
            audio = await self._request_audio(session, clean_text)

        if audio is None or session != self._session:
            if session == self._session:
                self._state = NarrationState.IDLE
                self._notify(False)
            return False

        return self._start_playback(session, audio)

    async def _request_audio(self, session: int, text: str) -> Optional[bytes]:
        """Synthesize with key rotation; None on any failure or if superseded."""
        for attempt in range(self._max_retries + 1):
            if session != self._session:
                return None

            resolved = await self._key_pool.current_key()
            if resolved is None:
                logger.warning("Narration skipped: key pool is empty")
                return None

            try:
                return await self._key_pool.synthesize(resolved.key, text)
            except KeyRejectedError as exc:
                logger.warning(
                    f"Narration key rejected ({exc.provider_status}), "
                    f"attempt {attempt + 1}/{self._max_retries + 1}",
                    extra={"key_index": resolved.index, "session": session},
                )
                await self._key_pool.rotate(resolved.index)
            except NarrationProviderError as exc:
                logger.error(f"Narration failed: {exc.message}", extra={"session": session})
                return None
            except httpx.HTTPError as exc:
                logger.error(f"Narration request failed: {exc!r}", extra={"session": session})
                return None

        logger.error(
            f"Narration gave up after {self._max_retries + 1} rejected keys",
            extra={"session": session},
        )
        return None

    def _start_playback(self, session: int, audio: bytes) -> bool:
        def on_started() -> None:
            if session == self._session:
                self._state = NarrationState.PLAYING
                self._notify(True)

        def on_finished() -> None:
            if session != self._session:
                return
            self._handle = None
            self._state = NarrationState.IDLE
            self._notify(False)

        try:
            handle = self._player.play(audio, on_started, on_finished)
        except Exception:
            logger.exception("Audio playback failed to start")
            self._state = NarrationState.IDLE
            self._notify(False)
            return False

        # The player may already have finished synchronously
        if session == self._session and self._state != NarrationState.IDLE:
            self._handle = handle
        return True
