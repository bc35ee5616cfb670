"""
Concrete Speech Backends.

    - Pyttsx3Platform: on-device synthesis through pyttsx3
    - HttpAudioBackend: remote audio fetched with httpx, played by an
      external player process

Lazy Loading:
    Backend classes are imported on first access so that code which only
    needs the orchestration logic (tests, the API with injected fakes)
    does not import pyttsx3 or spawn worker threads.

Usage:
    from tts_fallback.speech.backends import HttpAudioBackend, Pyttsx3Platform

    platform = Pyttsx3Platform(driver=None, base_rate_wpm=200)
    backend = HttpAudioBackend(player_command=["ffplay", "-nodisp", "-autoexit", "-"],
                               user_agent="tts-fallback")
"""
from __future__ import annotations

__all__ = [
    "HttpAudioBackend",
    "HttpAudioElement",
    "Pyttsx3Platform",
]


def __getattr__(name: str):
    """Lazy import backend classes on first access."""
    if name == "Pyttsx3Platform":
        from tts_fallback.speech.backends.pyttsx3_platform import Pyttsx3Platform
        return Pyttsx3Platform
    if name in ("HttpAudioBackend", "HttpAudioElement"):
        from tts_fallback.speech.backends import http_audio
        return getattr(http_audio, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
