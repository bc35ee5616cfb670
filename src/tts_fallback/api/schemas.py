"""
API Request/Response Schemas.

Pydantic models for the control endpoints. Range checks on voice
settings are left to the orchestrator so that out-of-range values come
back as the service's own INVALID_INPUT error (HTTP 400) rather than a
generic validation error.

Example Request (POST /v1/speak):
    {
        "text": "日本語テスト",
        "lang": "ja-JP",
        "rate": 1.0,
        "wait": true
    }

See Also:
    - services/orchestrator.py: SpeakResult, SpeechStatus, LanguageCheck
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

MAX_TEXT_LENGTH = 4000


class SpeakRequest(BaseModel):
    """
    Speak request schema.

    Attributes:
        text: Text to speak. Blank text is accepted and reported as skipped.
        lang: Language tag for this call only (e.g. "en-US").
        rate: Speaking rate multiplier for this call only.
        pitch: Pitch multiplier for this call only.
        volume: Volume in [0, 1] for this call only.
        wait: Wait for playback to finish (true) or return immediately (false).
    """
    text: str = Field(
        ...,
        max_length=MAX_TEXT_LENGTH,
        description="Text to speak (up to 4000 characters)"
    )
    lang: Optional[str] = Field(default=None, description="Language tag, e.g. 'zh-TW'")
    rate: Optional[float] = Field(default=None, description="Speaking rate multiplier (> 0)")
    pitch: Optional[float] = Field(default=None, description="Pitch multiplier (> 0)")
    volume: Optional[float] = Field(default=None, description="Volume in [0, 1]")
    wait: bool = Field(default=True, description="Wait until playback ends")

    def options(self) -> Dict[str, Any]:
        """Per-call overrides that were actually given."""
        fields = {"lang": self.lang, "rate": self.rate, "pitch": self.pitch, "volume": self.volume}
        return {k: v for k, v in fields.items() if v is not None}


class SettingsUpdate(BaseModel):
    """PATCH /v1/settings body; only the given fields change."""
    rate: Optional[float] = None
    pitch: Optional[float] = None
    volume: Optional[float] = None
    lang: Optional[str] = None
    voice: Optional[str] = Field(default=None, description="Voice name or id; empty string clears it")
    remote_enabled: Optional[bool] = None


class LanguageTestRequest(BaseModel):
    """POST /v1/languages/test body; omit languages to sweep the whole table."""
    languages: Optional[List[str]] = Field(default=None, min_length=1)


class SpeakAccepted(BaseModel):
    """Returned by POST /v1/speak when wait is false."""
    ok: bool = True
    request_id: str
    status: str = "accepted"
