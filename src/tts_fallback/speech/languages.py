"""
Language Support Tables.

Immutable tables for the ten supported language tags:
    - SUPPORTED_LANGUAGES: tag -> human-readable display name
    - REMOTE_LANGUAGE_CODES: tag -> language code understood by the remote service
    - SAMPLE_PHRASES: tag -> short phrase used by the diagnostic sweep

Fallback rule (used everywhere a tag is resolved):
    1. exact tag
    2. primary subtag ("en-US" -> "en")

Tags are compared case-insensitively with "_" treated as "-", since
platform drivers report tags such as "en_US" or "EN-us".
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

SUPPORTED_LANGUAGES: Mapping[str, str] = MappingProxyType({
    "zh-TW": "繁體中文（台灣）",
    "zh-CN": "簡體中文（中國）",
    "zh-HK": "繁體中文（香港）",
    "en-US": "English (US)",
    "en-GB": "English (UK)",
    "ja-JP": "日本語",
    "ko-KR": "한국어",
    "fr-FR": "Français",
    "de-DE": "Deutsch",
    "es-ES": "Español",
})

# Hong Kong has no dedicated remote voice; it shares Taiwan's
REMOTE_LANGUAGE_CODES: Mapping[str, str] = MappingProxyType({
    "zh-TW": "zh-TW",
    "zh-CN": "zh-CN",
    "zh-HK": "zh-TW",
    "en-US": "en",
    "en-GB": "en",
    "ja-JP": "ja",
    "ko-KR": "ko",
    "fr-FR": "fr",
    "de-DE": "de",
    "es-ES": "es",
})

SAMPLE_PHRASES: Mapping[str, str] = MappingProxyType({
    "zh-TW": "繁體中文測試",
    "zh-CN": "简体中文测试",
    "zh-HK": "繁體中文測試",
    "ja-JP": "日本語テスト",
    "en-US": "English test",
    "ko-KR": "한국어 테스트",
})

DEFAULT_SAMPLE_PHRASE = "Test"


def normalize_tag(tag: str) -> str:
    """Canonical comparison form of a tag: lower case, "-" separated."""
    return tag.strip().replace("_", "-").lower()


def primary_subtag(tag: str) -> str:
    """
    Primary subtag of a language tag.

    >>> primary_subtag("zh-TW")
    'zh'
    >>> primary_subtag("en_US")
    'en'
    """
    return normalize_tag(tag).split("-", 1)[0]


def tags_match(candidate: str, wanted: str) -> bool:
    """True if candidate equals wanted, or both share a primary subtag."""
    if not candidate or not wanted:
        return False
    if normalize_tag(candidate) == normalize_tag(wanted):
        return True
    return primary_subtag(candidate) == primary_subtag(wanted)


def remote_language_code(tag: str) -> str:
    """Remote service code for a tag: exact table entry, else primary subtag."""
    code = REMOTE_LANGUAGE_CODES.get(tag.strip())
    if code:
        return code
    return primary_subtag(tag)


def language_name(tag: str) -> str:
    """Display name of a tag, or the tag itself when it is not in the table."""
    return SUPPORTED_LANGUAGES.get(tag, tag)


def sample_phrase(tag: str) -> str:
    return SAMPLE_PHRASES.get(tag, DEFAULT_SAMPLE_PHRASE)
