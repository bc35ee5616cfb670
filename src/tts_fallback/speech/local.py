"""
On-device Speech Engine.

Drives the SynthesisPlatform for one utterance at a time:

    Idle -> Speaking -> Completed | Failed
                  \\-> Cancelled (stop() or a newer speak())

speak() hard-cancels whatever utterance is in progress, hands a new
Utterance to the platform and suspends until the platform reports the
end of speech or an error. Callbacks belonging to an utterance that was
cancelled meanwhile are ignored.
"""
from __future__ import annotations

from typing import Optional

from tts_fallback.core.logging import debug, get_logger, verbose
from tts_fallback.speech.errors import LocalSynthesisError
from tts_fallback.speech.playback import (
    ActiveAudio,
    PlaybackAttempt,
    PlaybackState,
    PlayerState,
    SpeechOutcome,
)
from tts_fallback.speech.platform import SynthesisPlatform, Utterance
from tts_fallback.speech.settings import VoiceSettings
from tts_fallback.speech.voices import LanguageCapability

_LOG = get_logger("tts-fallback.local")


class LocalSpeechEngine:
    """
    Single-utterance driver for the on-device synthesis platform.

    Args:
        platform: On-device synthesis primitive.
        capability: Used to pick a voice for the requested language.
        state: Player state shared with the rest of the orchestrator.
        audio: Registry of remote audio elements, stopped by stop().
    """

    def __init__(
        self,
        platform: SynthesisPlatform,
        capability: LanguageCapability,
        state: PlayerState,
        audio: ActiveAudio,
    ):
        self._platform = platform
        self._capability = capability
        self._state = state
        self._audio = audio
        self._attempt: Optional[PlaybackAttempt] = None

    @property
    def speaking(self) -> bool:
        return self._attempt is not None and not self._attempt.settled

    async def speak(self, text: str, settings: VoiceSettings) -> SpeechOutcome:
        """
        Speak text and wait until the platform finishes.

        Returns:
            COMPLETED after end of speech, CANCELLED if stop() or a newer
            speak() interrupted this utterance.

        Raises:
            LocalSynthesisError: The platform reported an error; the
                exception carries the platform's error code.
        """
        self._cancel_current()

        attempt = PlaybackAttempt()
        self._attempt = attempt
        voice = settings.preferred_voice or self._capability.pick_voice(settings.language)

        def on_start() -> None:
            if attempt.settled:
                return
            self._state.transition(PlaybackState.PLAYING_LOCAL)

        def on_end() -> None:
            if attempt.resolve(SpeechOutcome.COMPLETED):
                self._state.reset()

        def on_error(code: str) -> None:
            if attempt.reject(LocalSynthesisError(code, {"lang": settings.language})):
                self._state.reset()

        utterance = Utterance(
            text=text,
            lang=settings.language,
            rate=settings.rate,
            pitch=settings.pitch,
            volume=settings.volume,
            voice=voice,
            on_start=on_start,
            on_end=on_end,
            on_error=on_error,
        )
        verbose(
            _LOG,
            "local_utterance",
            utterance=utterance.id,
            lang=settings.language,
            voice=voice.name if voice else None,
        )

        try:
            self._platform.speak(utterance)
            return await attempt
        finally:
            if self._attempt is attempt:
                self._attempt = None

    def _cancel_current(self) -> None:
        # Settle first so the platform's own "interrupted" callback is dropped
        if self._attempt is not None:
            self._attempt.cancel()
            self._attempt = None
        self._platform.cancel()

    def stop(self) -> None:
        """
        Silence both backends and return to IDLE.

        Safe to call at any time, any number of times.
        """
        self._cancel_current()
        stopped = self._audio.stop_all()
        if stopped:
            debug(_LOG, "audio_elements_stopped", count=stopped)
        self._state.reset()

    def pause(self) -> bool:
        """
        Pause the current utterance.

        Only valid while PLAYING_LOCAL, and only if the platform can pause;
        otherwise the state is left untouched and False is returned.
        """
        if self._state.state is not PlaybackState.PLAYING_LOCAL:
            return False
        if not self._platform.pause():
            verbose(_LOG, "pause_refused", state=self._state.state.value)
            return False
        self._state.transition(PlaybackState.PAUSED)
        return True

    def resume(self) -> bool:
        """Resume a paused utterance; no-op unless PAUSED."""
        if not self._state.is_paused:
            return False
        self._platform.resume()
        self._state.transition(PlaybackState.PLAYING_LOCAL)
        return True
