"""
Remote Speech Client with Ordered Mirror Failover.

The remote service is reachable through several equivalent mirrors. A
call walks them strictly in configured order, one at a time:

    for each mirror:
        new audio element, src = mirror URL
        start playback (bounded by start_timeout_s)
            start failed / timed out  -> next mirror
        wait for end of audio
            playback error            -> next mirror
            ended                     -> COMPLETED
    all mirrors failed -> RemoteExhaustedError

Network, HTTP and player failures are all treated as "this mirror is
unavailable". Mirrors are never raced in parallel.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import quote

from tts_fallback.core.logging import get_logger, verbose, warn
from tts_fallback.core.metrics import metrics
from tts_fallback.speech.errors import AudioStartError, RemoteExhaustedError, RemoteMirrorError
from tts_fallback.speech.playback import (
    ActiveAudio,
    PlaybackAttempt,
    PlaybackState,
    PlayerState,
    SpeechOutcome,
)
from tts_fallback.speech.platform import AudioBackend, AudioElement

_LOG = get_logger("tts-fallback.remote")


@dataclass
class _RemoteCall:
    """Bookkeeping for the speak() call currently walking the mirrors."""
    cancelled: bool = False
    attempt: Optional[PlaybackAttempt] = None
    element: Optional[AudioElement] = None


class RemoteSpeechClient:
    """
    Plays speech fetched from the remote mirrors.

    Args:
        backend: Factory for audio elements.
        mirrors: URL templates with {lang}, {client} and {text} placeholders.
        client_id: Fixed client identifier sent to the service.
        state: Player state shared with the rest of the orchestrator.
        audio: Registry of active audio elements.
        start_timeout_s: Upper bound on starting playback at one mirror.
    """

    def __init__(
        self,
        backend: AudioBackend,
        mirrors: Sequence[str],
        client_id: str,
        state: PlayerState,
        audio: ActiveAudio,
        start_timeout_s: float = 10.0,
    ):
        self._backend = backend
        self._mirrors = tuple(mirrors)
        self._client_id = client_id
        self._state = state
        self._audio = audio
        self._start_timeout_s = start_timeout_s
        self._call: Optional[_RemoteCall] = None

    @property
    def mirrors(self) -> tuple:
        return self._mirrors

    def build_urls(self, text: str, remote_lang: str) -> List[str]:
        """One request URL per mirror, in mirror order, with the text percent-encoded."""
        fields = {
            "lang": quote(remote_lang, safe=""),
            "client": quote(self._client_id, safe=""),
            "text": quote(text, safe=""),
        }
        return [template.format(**fields) for template in self._mirrors]

    async def speak(self, text: str, remote_lang: str) -> SpeechOutcome:
        """
        Play text through the first mirror that works.

        Returns:
            COMPLETED once audio from some mirror played to the end,
            CANCELLED if stop() interrupted the call.

        Raises:
            RemoteExhaustedError: Every mirror failed.
        """
        self.stop()
        call = _RemoteCall()
        self._call = call
        urls = self.build_urls(text, remote_lang)

        try:
            for index, url in enumerate(urls, start=1):
                if call.cancelled:
                    return SpeechOutcome.CANCELLED
                try:
                    outcome = await self._play_mirror(call, index, len(urls), url)
                except RemoteMirrorError as exc:
                    if not call.cancelled:
                        warn(_LOG, "mirror_failed", mirror=index, total=len(urls), reason=exc.reason)
                    continue
                metrics.record_mirror_attempt(index, outcome.value)
                return outcome

            if call.cancelled:
                return SpeechOutcome.CANCELLED
            self._state.reset()
            raise RemoteExhaustedError(len(urls), remote_lang)
        finally:
            if self._call is call:
                self._call = None

    async def _play_mirror(self, call: _RemoteCall, index: int, total: int, url: str) -> SpeechOutcome:
        element = self._backend.new_element()
        attempt = PlaybackAttempt()
        call.element = element
        call.attempt = attempt

        def on_ended() -> None:
            attempt.resolve(SpeechOutcome.COMPLETED)

        def on_error(code: str) -> None:
            attempt.reject(RemoteMirrorError(index, code))

        element.on_ended = on_ended
        element.on_error = on_error
        element.src = url
        self._audio.register(element)
        verbose(_LOG, "mirror_attempt", mirror=index, total=total)

        # stop() settles the attempt, which also ends the wait for the start
        start = asyncio.ensure_future(element.play())
        try:
            await asyncio.wait(
                {start, attempt.future},
                timeout=self._start_timeout_s,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if call.cancelled:
                element.stop()
                attempt.discard()
                return SpeechOutcome.CANCELLED

            if not start.done() and not attempt.settled:
                element.stop()
                attempt.discard()
                metrics.record_mirror_attempt(index, "start_timeout")
                raise RemoteMirrorError(index, "start-timeout")
            # Any exception out of play() means this mirror did not start
            if start.done() and (start.cancelled() or start.exception() is not None):
                failure = None if start.cancelled() else start.exception()
                element.stop()
                attempt.discard()
                metrics.record_mirror_attempt(index, "start_failed")
                if not isinstance(failure, AudioStartError):
                    verbose(_LOG, "mirror_start_crashed", mirror=index, error=repr(failure))
                raise RemoteMirrorError(index, "start-failed") from failure

            if not attempt.settled:
                self._state.transition(PlaybackState.PLAYING_REMOTE)
            verbose(_LOG, "mirror_started", mirror=index)
            try:
                outcome = await attempt
            except RemoteMirrorError:
                metrics.record_mirror_attempt(index, "playback_error")
                raise
            if outcome is SpeechOutcome.COMPLETED:
                self._state.reset()
            return outcome
        finally:
            if not start.done():
                start.cancel()
            elif not start.cancelled():
                start.exception()
            self._audio.discard(element)

    def stop(self) -> None:
        """Cancel the call in progress, if any, and silence its audio element."""
        call = self._call
        if call is None:
            return
        call.cancelled = True
        if call.attempt is not None:
            call.attempt.cancel()
        if call.element is not None:
            call.element.stop()
            self._audio.discard(call.element)
        self._state.reset()
