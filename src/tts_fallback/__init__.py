"""
tts-fallback: Resilient Text-to-Speech with Local-then-Remote Fallback.

Speech output that tries the device's own synthesis voices first and falls
back to a mirrored remote translation-service speech endpoint when the
device cannot speak the requested language.

Key Features:
    - Voice catalog discovery with bounded retry
    - Language capability check (exact tag, then primary subtag)
    - Ordered failover across remote mirror endpoints
    - Playback lifecycle control (stop/pause/resume) over two audio backends
    - FastAPI control service and command-line interface
    - Prometheus metrics support

Example Usage:
    >>> import asyncio
    >>> from tts_fallback.core.config import Settings
    >>> from tts_fallback.services import create_orchestrator
    >>>
    >>> orchestrator = create_orchestrator(Settings(raw={}))
    >>> asyncio.run(orchestrator.initialize())
    >>> asyncio.run(orchestrator.speak("Hello", {"lang": "en-US"}))
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
