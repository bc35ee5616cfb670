"""
Voice Settings and Per-call Options.

VoiceSettings are the orchestrator's mutable defaults; SpeakOptions
override them for a single call. Merging never mutates the defaults:

    effective = defaults.merged(SpeakOptions(lang="ja-JP"))
"""
from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional, Union

from tts_fallback.core.config import SpeechConfig
from tts_fallback.speech.errors import InvalidSettingError
from tts_fallback.speech.platform import VoiceDescriptor


def _finite(value: Any, field: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidSettingError(f"{field} must be a number, got {value!r}", {"field": field}) from None
    if not math.isfinite(number):
        raise InvalidSettingError(f"{field} must be finite, got {number}", {"field": field})
    return number


def validate_rate(value: float) -> float:
    value = _finite(value, "rate")
    if value <= 0:
        raise InvalidSettingError(f"rate must be positive, got {value}", {"field": "rate"})
    return value


def validate_pitch(value: float) -> float:
    value = _finite(value, "pitch")
    if value <= 0:
        raise InvalidSettingError(f"pitch must be positive, got {value}", {"field": "pitch"})
    return value


def validate_volume(value: float) -> float:
    value = _finite(value, "volume")
    if not 0.0 <= value <= 1.0:
        raise InvalidSettingError(f"volume must be between 0 and 1, got {value}", {"field": "volume"})
    return value


def validate_language(value: str) -> str:
    value = str(value).strip()
    if not value:
        raise InvalidSettingError("language tag must not be empty", {"field": "lang"})
    return value


@dataclass(frozen=True)
class SpeakOptions:
    """
    Per-call overrides. Every field is optional; None inherits the default.

    Attributes:
        rate: Speaking rate multiplier (> 0).
        pitch: Pitch multiplier (> 0).
        volume: Volume in [0, 1].
        lang: Language tag such as "ja-JP".
    """
    rate: Optional[float] = None
    pitch: Optional[float] = None
    volume: Optional[float] = None
    lang: Optional[str] = None

    @classmethod
    def coerce(cls, options: Union["SpeakOptions", Mapping[str, Any], None]) -> "SpeakOptions":
        """Accept an options object, a plain mapping, or None."""
        if options is None:
            return cls()
        if isinstance(options, SpeakOptions):
            return options
        unknown = set(options) - {"rate", "pitch", "volume", "lang"}
        if unknown:
            raise InvalidSettingError(f"unknown speak options: {sorted(unknown)}", {"fields": sorted(unknown)})
        return cls(
            rate=options.get("rate"),
            pitch=options.get("pitch"),
            volume=options.get("volume"),
            lang=options.get("lang"),
        )


@dataclass(frozen=True)
class VoiceSettings:
    """
    Effective voice settings for an utterance.

    Attributes:
        rate: Speaking rate multiplier (> 0).
        pitch: Pitch multiplier (> 0).
        volume: Volume in [0, 1].
        language: Language tag.
        preferred_voice: Voice to use instead of the catalog's pick.
    """
    rate: float
    pitch: float
    volume: float
    language: str
    preferred_voice: Optional[VoiceDescriptor] = None

    def __post_init__(self) -> None:
        validate_rate(self.rate)
        validate_pitch(self.pitch)
        validate_volume(self.volume)
        validate_language(self.language)

    @classmethod
    def from_config(cls, config: SpeechConfig) -> "VoiceSettings":
        return cls(
            rate=config.rate,
            pitch=config.pitch,
            volume=config.volume,
            language=config.language,
        )

    def merged(self, options: SpeakOptions) -> "VoiceSettings":
        """Return a copy with every set option field taking precedence."""
        changes = {}
        if options.rate is not None:
            changes["rate"] = validate_rate(options.rate)
        if options.pitch is not None:
            changes["pitch"] = validate_pitch(options.pitch)
        if options.volume is not None:
            changes["volume"] = validate_volume(options.volume)
        if options.lang is not None:
            changes["language"] = validate_language(options.lang)
            # A voice picked for the default language does not carry over
            changes["preferred_voice"] = None
        return replace(self, **changes) if changes else self
