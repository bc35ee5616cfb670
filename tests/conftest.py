"""
Shared fakes for the speech tests.

FakePlatform and FakeAudioBackend implement the collaborator protocols
in memory so the orchestration logic can be driven deterministically:

    platform = FakePlatform(voices=[voice("en-US")])
    backend = FakeAudioBackend(["start_fail", "error", "ok"])

Audio element behaviours (one per mirror attempt, in order):
    ok          play() succeeds, on_ended fires on the next loop turn
    start_fail  play() raises AudioStartError
    crash       play() raises RuntimeError (a broken audio stack)
    error       play() succeeds, on_error fires on the next loop turn
    hang        play() never returns (exercises the start timeout)
    hold        play() succeeds, the test fires callbacks itself
"""
from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

import pytest

from tts_fallback.core.config import Settings
from tts_fallback.services.orchestrator import SpeechOrchestrator
from tts_fallback.speech.errors import AudioStartError
from tts_fallback.speech.platform import Utterance, VoiceDescriptor


def voice(tag: str, name: Optional[str] = None) -> VoiceDescriptor:
    return VoiceDescriptor(language_tag=tag, native_handle=f"id-{name or tag}", name=name or f"Voice {tag}")


class FakePlatform:
    """
    In-memory SynthesisPlatform.

    Attributes:
        mode: "complete", "error" or "hold" for each spoken utterance.
        announce_on_listen: Voices published (with a voices-changed
            notification) as soon as a listener is registered.
    """

    def __init__(self, voices: Sequence[VoiceDescriptor] = (), mode: str = "complete"):
        self.voices: List[VoiceDescriptor] = list(voices)
        self.mode = mode
        self.error_code = "synthesis-failed"
        self.announce_on_listen: Optional[List[VoiceDescriptor]] = None
        self.listeners: list = []
        self.spoken: List[Utterance] = []
        self.get_voices_calls = 0
        self.cancel_calls = 0
        self.pause_calls = 0
        self.can_pause = True
        self.resume_calls = 0

    def get_voices(self) -> List[VoiceDescriptor]:
        self.get_voices_calls += 1
        return list(self.voices)

    def add_voices_changed_listener(self, listener) -> None:
        self.listeners.append(listener)
        if self.announce_on_listen is not None:
            asyncio.get_running_loop().call_soon(self.fire_voices_changed, self.announce_on_listen)

    def remove_voices_changed_listener(self, listener) -> None:
        if listener in self.listeners:
            self.listeners.remove(listener)

    def fire_voices_changed(self, voices: Optional[Sequence[VoiceDescriptor]] = None) -> None:
        if voices is not None:
            self.voices = list(voices)
        for listener in list(self.listeners):
            listener()

    def speak(self, utterance: Utterance) -> None:
        self.spoken.append(utterance)
        loop = asyncio.get_running_loop()
        if self.mode == "complete":
            loop.call_soon(utterance.on_start)
            loop.call_soon(utterance.on_end)
        elif self.mode == "error":
            loop.call_soon(utterance.on_start)
            loop.call_soon(utterance.on_error, self.error_code)

    def cancel(self) -> None:
        self.cancel_calls += 1

    def pause(self) -> bool:
        self.pause_calls += 1
        return self.can_pause

    def resume(self) -> None:
        self.resume_calls += 1


class FakeAudioElement:
    def __init__(self, behaviour: str):
        self.behaviour = behaviour
        self.src = ""
        self.on_ended = lambda: None
        self.on_error = lambda code: None
        self.played = False
        self.stop_calls = 0

    async def play(self) -> None:
        self.played = True
        loop = asyncio.get_running_loop()
        if self.behaviour == "start_fail":
            raise AudioStartError("HTTP 503", {"status": 503})
        if self.behaviour == "crash":
            raise RuntimeError("decoder crashed")
        if self.behaviour == "hang":
            await loop.create_future()
        if self.behaviour == "ok":
            loop.call_soon(lambda: self.on_ended())
        elif self.behaviour == "error":
            loop.call_soon(lambda: self.on_error("network"))

    def stop(self) -> None:
        self.stop_calls += 1


class FakeAudioBackend:
    """AudioBackend handing out scripted elements; "ok" once the script runs out."""

    def __init__(self, behaviours: Sequence[str] = ()):
        self.behaviours = list(behaviours)
        self.elements: List[FakeAudioElement] = []
        self.closed = False

    def new_element(self) -> FakeAudioElement:
        behaviour = self.behaviours.pop(0) if self.behaviours else "ok"
        element = FakeAudioElement(behaviour)
        self.elements.append(element)
        return element

    @property
    def urls(self) -> List[str]:
        return [e.src for e in self.elements]

    async def aclose(self) -> None:
        self.closed = True


class SleepRecorder:
    """Awaitable sleep replacement recording requested delays."""

    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class StatusRecorder:
    def __init__(self):
        self.messages: List[tuple] = []

    def __call__(self, message: str, severity: str) -> None:
        self.messages.append((message, severity))

    @property
    def severities(self) -> List[str]:
        return [s for _, s in self.messages]


MIRRORS = [
    "https://m1.example/tts?tl={lang}&client={client}&q={text}",
    "https://m2.example/tts?tl={lang}&client={client}&q={text}",
    "https://m3.example/tts?tl={lang}&client={client}&q={text}",
]


def build_orchestrator(
    voices: Sequence[VoiceDescriptor] = (),
    behaviours: Sequence[str] = (),
    remote_enabled: bool = True,
    language: str = "zh-TW",
    platform: Optional[FakePlatform] = None,
    status_sink=None,
    **sections,
):
    """Orchestrator wired to fakes; returns (orchestrator, platform, backend, sleeps, statuses)."""
    raw = {
        "speech": {"language": language},
        "voices": {"changed_timeout_s": 0.01},
        "remote": {"enabled": remote_enabled, "mirrors": MIRRORS, "start_timeout_s": 0.05},
    }
    for name, values in sections.items():
        raw.setdefault(name, {}).update(values)
    config = Settings(raw=raw).get_service_config()

    platform = platform or FakePlatform(voices)
    backend = FakeAudioBackend(behaviours)
    sleeps = SleepRecorder()
    statuses = status_sink if status_sink is not None else StatusRecorder()
    orchestrator = SpeechOrchestrator(platform, backend, config=config, status_sink=statuses, sleep=sleeps)
    return orchestrator, platform, backend, sleeps, statuses


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Environment overrides must not leak into config-driven tests."""
    monkeypatch.delenv("TTS_FALLBACK_LANGUAGE", raising=False)
    monkeypatch.delenv("TTS_FALLBACK_REMOTE_ENABLED", raising=False)
