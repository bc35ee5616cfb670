"""
Collaborator Interfaces for the Two Audio Backends.

The orchestration code never talks to pyttsx3, httpx or a player process
directly; it talks to these protocols. Concrete implementations live in
``tts_fallback.speech.backends``; tests drive the same protocols with
in-memory fakes.

Local synthesis primitive (SynthesisPlatform):
    - get_voices() -> list of VoiceDescriptor, possibly empty while the
      platform is still discovering voices
    - add/remove_voices_changed_listener(callback)
    - speak(utterance): fires utterance.on_start / on_end / on_error(code)
    - cancel(), resume()
    - pause() -> bool; False when the platform cannot pause, in which
      case speech keeps playing

Remote audio (AudioBackend / AudioElement):
    - backend.new_element() -> AudioElement
    - element.src = url; await element.play() raises AudioStartError
    - element.on_ended() / element.on_error(code) fire after a started play
    - element.stop() pauses and rewinds; safe in any state
"""
from __future__ import annotations

from dataclasses import dataclass, field
from itertools import count
from typing import Any, Callable, List, Optional, Protocol

VoicesChangedListener = Callable[[], None]

_utterance_ids = count(1)


@dataclass(frozen=True)
class VoiceDescriptor:
    """
    One installed on-device voice, as reported by the platform.

    Attributes:
        language_tag: Language tag the voice speaks ("en-US").
        native_handle: Opaque platform reference (pyttsx3 voice id).
        name: Human-readable voice name.
    """
    language_tag: str
    native_handle: Any
    name: str = ""


@dataclass
class Utterance:
    """
    One request to synthesize text with a given voice and settings.

    The platform invokes the callbacks; the engine that built the
    utterance decides whether a callback still matters.
    """
    text: str
    lang: str
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: Optional[VoiceDescriptor] = None
    on_start: Callable[[], None] = lambda: None
    on_end: Callable[[], None] = lambda: None
    on_error: Callable[[str], None] = lambda code: None
    id: int = field(default_factory=lambda: next(_utterance_ids))


class SynthesisPlatform(Protocol):
    """On-device speech synthesis primitive."""

    def get_voices(self) -> List[VoiceDescriptor]: ...

    def add_voices_changed_listener(self, listener: VoicesChangedListener) -> None: ...

    def remove_voices_changed_listener(self, listener: VoicesChangedListener) -> None: ...

    def speak(self, utterance: Utterance) -> None: ...

    def cancel(self) -> None: ...

    def pause(self) -> bool: ...

    def resume(self) -> None: ...


class AudioElement(Protocol):
    """One remote audio playback slot (the equivalent of an audio tag)."""

    src: str
    on_ended: Callable[[], None]
    on_error: Callable[[str], None]

    async def play(self) -> None: ...

    def stop(self) -> None: ...


class AudioBackend(Protocol):
    """Factory for audio elements, owning any shared connections."""

    def new_element(self) -> AudioElement: ...

    async def aclose(self) -> None: ...
