"""
tts-fallback Services Layer.

Sits between the host surfaces (HTTP API, CLI) and the speech core.

Components:
    - orchestrator.py: SpeechOrchestrator (local-first speech with remote fallback)
    - status.py: status sink protocol and the bounded StatusBoard
"""
from .orchestrator import (
    KEY_LANGUAGES,
    LanguageCheck,
    SpeakResult,
    SpeechOrchestrator,
    SpeechStatus,
    create_orchestrator,
)
from .status import Severity, StatusBoard, StatusMessage, StatusSink

__all__ = [
    "SpeechOrchestrator",
    "SpeakResult",
    "SpeechStatus",
    "LanguageCheck",
    "KEY_LANGUAGES",
    "create_orchestrator",
    "Severity",
    "StatusBoard",
    "StatusMessage",
    "StatusSink",
]
