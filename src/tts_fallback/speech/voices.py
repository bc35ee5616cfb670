"""
Voice Catalog and Language Capability.

VoiceCatalog:
    Snapshot of the platform's on-device voices. Platforms often report
    an empty list at startup and fill it in later, announcing it with a
    "voices changed" notification, so loading waits for that event and
    is retried a bounded number of times.

    Once a non-empty snapshot has been taken the catalog is marked loaded
    and is never cleared again; later loads only replace it wholesale
    with another non-empty snapshot.

LanguageCapability:
    Answers "can the device speak this tag?" with a deliberately loose
    rule: exact tag, or same primary subtag. An "en-GB"-only device is
    treated as able to speak "en-US", trading accent precision for
    availability.
"""
from __future__ import annotations

import asyncio
from collections import Counter
from typing import Dict, Optional, Sequence, Tuple

from tts_fallback.core.logging import get_logger, info, verbose, warn
from tts_fallback.core.metrics import metrics
from tts_fallback.speech.languages import primary_subtag, tags_match
from tts_fallback.speech.platform import SynthesisPlatform, VoiceDescriptor
from tts_fallback.speech.retry import RetryPolicy, SleepFn

_LOG = get_logger("tts-fallback.voices")


class VoiceCatalog:
    """
    Read-only snapshot of the platform's voices.

    Attributes:
        loaded: True once a non-empty snapshot was taken.
    """

    def __init__(
        self,
        platform: SynthesisPlatform,
        retry_delay_s: float = 1.0,
        changed_timeout_s: float = 2.0,
        sleep: SleepFn = asyncio.sleep,
    ):
        self._platform = platform
        self._retry_delay_s = retry_delay_s
        self._changed_timeout_s = changed_timeout_s
        self._sleep = sleep
        self._voices: Tuple[VoiceDescriptor, ...] = ()
        self.loaded = False

    @property
    def voices(self) -> Tuple[VoiceDescriptor, ...]:
        return self._voices

    def __len__(self) -> int:
        return len(self._voices)

    def __iter__(self):
        return iter(self._voices)

    def _take(self, voices: Sequence[VoiceDescriptor]) -> Tuple[VoiceDescriptor, ...]:
        snapshot = tuple(voices)
        if snapshot:
            self._voices = snapshot
            self.loaded = True
            metrics.set_voices_loaded(len(snapshot))
        return snapshot

    async def load(self) -> Tuple[VoiceDescriptor, ...]:
        """
        Query the platform for its voices.

        Returns immediately when the platform already knows its voices.
        Otherwise waits for one "voices changed" notification (the
        listener is removed after it fires, or after the wait times out)
        and returns whatever the platform reports then, possibly nothing.
        """
        voices = self._platform.get_voices()
        if voices:
            return self._take(voices)

        loop = asyncio.get_running_loop()
        changed: asyncio.Future = loop.create_future()

        def on_voices_changed() -> None:
            self._platform.remove_voices_changed_listener(on_voices_changed)
            # Platforms may notify from their own thread
            loop.call_soon_threadsafe(_settle, changed)

        self._platform.add_voices_changed_listener(on_voices_changed)
        try:
            await asyncio.wait_for(changed, timeout=self._changed_timeout_s)
        except asyncio.TimeoutError:
            self._platform.remove_voices_changed_listener(on_voices_changed)
            verbose(_LOG, "voices_changed_timeout", seconds=self._changed_timeout_s)

        return self._take(self._platform.get_voices())

    async def load_with_retry(self, max_attempts: int) -> bool:
        """
        Load the catalog, retrying after empty results.

        Makes at most max_attempts calls to load(), waiting the fixed
        retry delay between two attempts and stopping at the first
        non-empty result. An empty catalog afterwards is a supported
        degraded mode (remote speech only), not an error.

        Returns:
            Whether the catalog is loaded.
        """
        policy = RetryPolicy(max_attempts=max_attempts, delay_s=self._retry_delay_s, sleep=self._sleep)
        result = await policy.run(
            self.load,
            accept=bool,
            on_reject=lambda attempt, _: verbose(_LOG, "voices_empty", attempt=attempt, max_attempts=max_attempts),
        )
        if result.succeeded:
            info(_LOG, "voices_loaded", count=len(self._voices), attempts=result.attempts)
        else:
            warn(_LOG, "voices_unavailable", attempts=result.attempts, fallback="remote")
        return self.loaded

    def refresh_if_empty(self) -> bool:
        """
        Non-blocking re-query used when a speak call finds the catalog empty.

        Returns:
            Whether the catalog holds voices afterwards.
        """
        if self._voices:
            return True
        if self._take(self._platform.get_voices()):
            info(_LOG, "voices_loaded_late", count=len(self._voices))
        return bool(self._voices)

    def find(self, name_or_handle: str) -> Optional[VoiceDescriptor]:
        """Look up a voice by its name or native handle."""
        for voice in self._voices:
            if voice.name == name_or_handle or str(voice.native_handle) == name_or_handle:
                return voice
        return None

    def summary(self) -> Dict[str, object]:
        """
        Voice counts: total plus per primary subtag.

        Example:
            {"total": 4, "by_language": {"en": 2, "zh": 1, "ja": 1}}
        """
        by_language = Counter(primary_subtag(v.language_tag) for v in self._voices if v.language_tag)
        return {"total": len(self._voices), "by_language": dict(sorted(by_language.items()))}


def _settle(future: asyncio.Future) -> None:
    if not future.done():
        future.set_result(None)


class LanguageCapability:
    """Decides whether the voice catalog can satisfy a language tag."""

    def __init__(self, catalog: VoiceCatalog):
        self._catalog = catalog

    def is_supported(self, language_tag: str) -> bool:
        """True iff some catalog voice matches by exact tag or primary subtag."""
        return self.pick_voice(language_tag) is not None

    def pick_voice(self, language_tag: str) -> Optional[VoiceDescriptor]:
        """First catalog voice matching by the same rule as is_supported."""
        for voice in self._catalog.voices:
            if tags_match(voice.language_tag, language_tag):
                return voice
        return None
