"""
Shared Playback State and Single-settlement Attempts.

PlayerState:
    The one PlaybackState value for an orchestrator, shared by reference
    with the local engine and the remote client. It is the only source of
    truth for "is something audible right now".

PlaybackAttempt:
    Wraps an asyncio.Future that is settled exactly once. Platform and
    audio callbacks for an attempt that was cancelled or superseded are
    dropped by checking ``attempt.settled`` before acting.

ActiveAudio:
    Registry of remote audio elements currently in use, so that a stop
    issued from anywhere silences every backend at once.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, List, Optional

from tts_fallback.core.logging import debug, get_logger
from tts_fallback.speech.platform import AudioElement

_LOG = get_logger("tts-fallback.playback")


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING_LOCAL = "playing_local"
    PLAYING_REMOTE = "playing_remote"
    PAUSED = "paused"


class SpeechOutcome(str, Enum):
    """How one local or remote attempt ended (failures raise instead)."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PlayerState:
    """
    Mutable holder of the current PlaybackState.

    Transitions are logged at DEBUG level.
    """

    def __init__(self) -> None:
        self._state = PlaybackState.IDLE

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state in (PlaybackState.PLAYING_LOCAL, PlaybackState.PLAYING_REMOTE)

    @property
    def is_paused(self) -> bool:
        return self._state is PlaybackState.PAUSED

    def transition(self, new_state: PlaybackState) -> None:
        if new_state is not self._state:
            debug(_LOG, "player_state", old=self._state.value, new=new_state.value)
            self._state = new_state

    def reset(self) -> None:
        self.transition(PlaybackState.IDLE)


class PlaybackAttempt:
    """
    Single-settlement handle for one local utterance or one mirror try.

    resolve()/reject()/cancel() return True only for the call that
    actually settled the attempt; later calls are no-ops.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self.future: asyncio.Future = self._loop.create_future()
        self.cancelled = False

    @property
    def settled(self) -> bool:
        return self.future.done()

    def resolve(self, value: Any = None) -> bool:
        if self.future.done():
            return False
        self.future.set_result(value)
        return True

    def reject(self, exc: BaseException) -> bool:
        if self.future.done():
            return False
        self.future.set_exception(exc)
        return True

    def cancel(self) -> bool:
        """Mark cancelled and resolve with SpeechOutcome.CANCELLED."""
        self.cancelled = True
        return self.resolve(SpeechOutcome.CANCELLED)

    def discard(self) -> None:
        """Drop an attempt nobody will await, consuming any stored error."""
        if not self.future.done():
            self.cancel()
        elif not self.future.cancelled():
            self.future.exception()

    def __await__(self):
        return self.future.__await__()


class ActiveAudio:
    """Registry of audio elements that may currently be producing sound."""

    def __init__(self) -> None:
        self._elements: List[AudioElement] = []

    def register(self, element: AudioElement) -> None:
        if element not in self._elements:
            self._elements.append(element)

    def discard(self, element: AudioElement) -> None:
        if element in self._elements:
            self._elements.remove(element)

    def stop_all(self) -> int:
        """Stop and forget every registered element; returns how many."""
        elements, self._elements = self._elements, []
        for element in elements:
            element.stop()
        return len(elements)

    def __len__(self) -> int:
        return len(self._elements)
