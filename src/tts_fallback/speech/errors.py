"""
Speech Error Codes and Exceptions.

Failures are recovered as deeply as possible:
    - AudioStartError / RemoteMirrorError: one mirror failed, try the next
    - LocalSynthesisError: on-device engine failed, fall back to remote
    - RemoteExhaustedError: every mirror failed, surfaced to the caller
    - UnsupportedLanguageError: no local voice and remote fallback disabled

Blank input is not an exception at all: it is reported as an
EMPTY_INPUT warning and the call returns.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """
    Standardized error codes used in SpeechError and API responses.
    """
    EMPTY_INPUT = "EMPTY_INPUT"                         # Blank text (warning only)
    LOCAL_SYNTHESIS_FAILED = "LOCAL_SYNTHESIS_FAILED"   # Platform utterance error
    REMOTE_MIRROR_FAILED = "REMOTE_MIRROR_FAILED"       # One mirror failed
    REMOTE_EXHAUSTED = "REMOTE_EXHAUSTED"               # All mirrors failed
    UNSUPPORTED_LANGUAGE = "UNSUPPORTED_LANGUAGE"       # No route for the language
    AUDIO_START_FAILED = "AUDIO_START_FAILED"           # Audio element could not start
    INVALID_INPUT = "INVALID_INPUT"                     # Bad setting value
    INTERNAL_ERROR = "INTERNAL_ERROR"


class SpeechError(Exception):
    """
    Base exception for speech errors.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode class.
        details: Optional dictionary with additional context.
    """
    def __init__(self, message: str, code: str = ErrorCode.INTERNAL_ERROR, details: Optional[Dict] = None):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to standardized error response dict for API."""
        result = {
            "ok": False,
            "error": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class LocalSynthesisError(SpeechError):
    """Raised when the on-device engine reports an utterance error."""
    def __init__(self, error_code: str, details: Optional[Dict] = None):
        self.error_code = error_code
        super().__init__(
            f"local synthesis failed: {error_code}",
            ErrorCode.LOCAL_SYNTHESIS_FAILED,
            {"platform_error": error_code, **(details or {})},
        )


class RemoteMirrorError(SpeechError):
    """One remote mirror failed to start or errored during playback."""
    def __init__(self, mirror: int, reason: str):
        self.mirror = mirror
        self.reason = reason
        super().__init__(
            f"mirror {mirror} failed: {reason}",
            ErrorCode.REMOTE_MIRROR_FAILED,
            {"mirror": mirror, "reason": reason},
        )


class RemoteExhaustedError(SpeechError):
    """Raised when every configured mirror failed."""
    def __init__(self, attempts: int, language: str):
        self.attempts = attempts
        super().__init__(
            f"all {attempts} remote speech mirrors failed",
            ErrorCode.REMOTE_EXHAUSTED,
            {"attempts": attempts, "remote_lang": language},
        )


class UnsupportedLanguageError(SpeechError):
    """Raised when no local voice fits and remote fallback is disabled."""
    def __init__(self, language: str):
        self.language = language
        super().__init__(
            f"unsupported language: {language}",
            ErrorCode.UNSUPPORTED_LANGUAGE,
            {"lang": language},
        )


class AudioStartError(SpeechError):
    """Raised by an audio element whose playback could not be started."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.AUDIO_START_FAILED, details)


class InvalidSettingError(SpeechError):
    """Raised when a voice setting is out of range."""
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INVALID_INPUT, details)
