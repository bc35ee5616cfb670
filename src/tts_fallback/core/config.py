"""
Configuration Management for tts-fallback.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (TTS_FALLBACK_LANGUAGE, etc.)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    speech:
      rate: 0.8
      language: zh-TW

    voices:
      max_attempts: 3
      retry_delay_s: 1.0

    remote:
      enabled: true
      start_timeout_s: 10

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

import math
import string
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    All default values are defined here to ensure consistency across
    the codebase. These values are used when no override is provided
    via YAML config or environment variables.

    Sections:
        - Speech: Per-utterance voice defaults
        - Voices: On-device voice catalog loading
        - Local: On-device synthesis driver
        - Remote: Mirrored remote speech endpoints
        - Diagnostics: Language sweep pacing
        - Logging: Log level and formatting
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Speech Defaults
    # ─────────────────────────────────────────────────────────────────────────
    SPEECH_RATE = 0.8                   # Speaking rate multiplier
    SPEECH_PITCH = 1.0                  # Pitch multiplier
    SPEECH_VOLUME = 1.0                 # Volume in [0, 1]
    SPEECH_LANGUAGE = "zh-TW"           # Default language tag

    # ─────────────────────────────────────────────────────────────────────────
    # Voice Catalog
    # ─────────────────────────────────────────────────────────────────────────
    VOICES_MAX_ATTEMPTS = 3             # Catalog load attempts at startup
    VOICES_RETRY_DELAY_S = 1.0          # Fixed delay between attempts
    VOICES_CHANGED_TIMEOUT_S = 2.0      # Max wait for a voices-changed event

    # ─────────────────────────────────────────────────────────────────────────
    # Local Synthesis
    # ─────────────────────────────────────────────────────────────────────────
    LOCAL_DRIVER = None                 # pyttsx3 driver (None = platform default)
    LOCAL_BASE_RATE_WPM = 200           # Words per minute at rate 1.0

    # ─────────────────────────────────────────────────────────────────────────
    # Remote Fallback
    # ─────────────────────────────────────────────────────────────────────────
    REMOTE_ENABLED = True
    REMOTE_CLIENT_ID = "tw-ob"
    REMOTE_MIRRORS = (
        "https://translate.google.com/translate_tts?ie=UTF-8&tl={lang}&client={client}&q={text}",
        "https://translate.google.com.vn/translate_tts?ie=UTF-8&tl={lang}&client={client}&q={text}",
        "https://translate.google.com.hk/translate_tts?ie=UTF-8&tl={lang}&client={client}&q={text}",
    )
    REMOTE_START_TIMEOUT_S = 10.0       # Per-mirror bound on starting playback
    REMOTE_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) tts-fallback/0.1"
    REMOTE_PLAYER_COMMAND = ("ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", "-")

    # ─────────────────────────────────────────────────────────────────────────
    # Diagnostics
    # ─────────────────────────────────────────────────────────────────────────
    DIAGNOSTICS_DELAY_S = 1.0           # Pause between remote checks
    DIAGNOSTICS_RUN_ON_STARTUP = False  # Sweep all languages at service start

    # ─────────────────────────────────────────────────────────────────────────
    # Logging
    # ─────────────────────────────────────────────────────────────────────────
    LOGGING_TEXT_PREVIEW_CHARS = 50     # Characters to show in text preview
    LOGGING_LEVEL = 2                   # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG


# Fields a remote mirror URL template may reference
MIRROR_PLACEHOLDERS = frozenset({"lang", "client", "text"})


@dataclass
class SpeechConfig:
    """
    Default voice settings applied to every utterance.

    Per-call options override these for one call only.
    """
    rate: float = Defaults.SPEECH_RATE
    pitch: float = Defaults.SPEECH_PITCH
    volume: float = Defaults.SPEECH_VOLUME
    language: str = Defaults.SPEECH_LANGUAGE


@dataclass
class VoiceCatalogConfig:
    """
    Voice catalog loading configuration.

    Platforms may report their voices late, so the catalog is loaded
    with a bounded number of attempts separated by a fixed delay.
    """
    max_attempts: int = Defaults.VOICES_MAX_ATTEMPTS
    retry_delay_s: float = Defaults.VOICES_RETRY_DELAY_S
    changed_timeout_s: float = Defaults.VOICES_CHANGED_TIMEOUT_S


@dataclass
class LocalEngineConfig:
    """On-device synthesis driver configuration."""
    driver: Optional[str] = Defaults.LOCAL_DRIVER
    base_rate_wpm: int = Defaults.LOCAL_BASE_RATE_WPM


@dataclass
class RemoteConfig:
    """
    Remote speech endpoint configuration.

    Mirrors are URL templates with {lang}, {client} and {text}
    placeholders, tried strictly in the listed order.
    """
    enabled: bool = Defaults.REMOTE_ENABLED
    client_id: str = Defaults.REMOTE_CLIENT_ID
    mirrors: Tuple[str, ...] = Defaults.REMOTE_MIRRORS
    start_timeout_s: float = Defaults.REMOTE_START_TIMEOUT_S
    user_agent: str = Defaults.REMOTE_USER_AGENT
    player_command: Tuple[str, ...] = Defaults.REMOTE_PLAYER_COMMAND


@dataclass
class DiagnosticsConfig:
    """
    Language sweep configuration.

    The remote service throttles bursts, so checks are serialized
    with a fixed delay between them.
    """
    delay_s: float = Defaults.DIAGNOSTICS_DELAY_S
    run_on_startup: bool = Defaults.DIAGNOSTICS_RUN_ON_STARTUP


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Speak lifecycle, fallback transitions (default)
        3 = VERBOSE: Per-mirror attempts, detailed flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class SpeechServiceConfig:
    """
    Validated configuration for the speech orchestrator.

    This is the main configuration object created from Settings.
    It validates all values and provides typed access to configuration.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = SpeechServiceConfig.from_settings(settings)
        print(config.remote.mirrors[0])  # Typed access
    """
    speech: SpeechConfig = field(default_factory=SpeechConfig)
    voices: VoiceCatalogConfig = field(default_factory=VoiceCatalogConfig)
    local: LocalEngineConfig = field(default_factory=LocalEngineConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SpeechServiceConfig":
        """
        Create SpeechServiceConfig from Settings with validation.

        Reads raw configuration dictionary, applies defaults for missing
        values, validates constraints, and returns typed configuration.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated SpeechServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Speech defaults (with environment variable override)
        # ─────────────────────────────────────────────────────────────────────
        speech_raw = raw.get("speech", {})
        language = os.getenv("TTS_FALLBACK_LANGUAGE") or speech_raw.get("language", Defaults.SPEECH_LANGUAGE)
        speech = SpeechConfig(
            rate=float(speech_raw.get("rate", Defaults.SPEECH_RATE)),
            pitch=float(speech_raw.get("pitch", Defaults.SPEECH_PITCH)),
            volume=float(speech_raw.get("volume", Defaults.SPEECH_VOLUME)),
            language=str(language).strip(),
        )
        cls._validate_positive("speech.rate", speech.rate)
        cls._validate_positive("speech.pitch", speech.pitch)
        cls._validate_range("speech.volume", speech.volume, 0.0, 1.0)
        if not speech.language:
            raise ConfigValidationError("speech.language must not be empty")

        # ─────────────────────────────────────────────────────────────────────
        # Voice catalog
        # ─────────────────────────────────────────────────────────────────────
        voices_raw = raw.get("voices", {})
        voices = VoiceCatalogConfig(
            max_attempts=int(voices_raw.get("max_attempts", Defaults.VOICES_MAX_ATTEMPTS)),
            retry_delay_s=float(voices_raw.get("retry_delay_s", Defaults.VOICES_RETRY_DELAY_S)),
            changed_timeout_s=float(voices_raw.get("changed_timeout_s", Defaults.VOICES_CHANGED_TIMEOUT_S)),
        )
        cls._validate_positive("voices.max_attempts", voices.max_attempts)
        cls._validate_non_negative("voices.retry_delay_s", voices.retry_delay_s)
        cls._validate_positive("voices.changed_timeout_s", voices.changed_timeout_s)

        # ─────────────────────────────────────────────────────────────────────
        # Local synthesis
        # ─────────────────────────────────────────────────────────────────────
        local_raw = raw.get("local", {})
        driver = local_raw.get("driver", Defaults.LOCAL_DRIVER)
        local = LocalEngineConfig(
            driver=str(driver) if driver else None,
            base_rate_wpm=int(local_raw.get("base_rate_wpm", Defaults.LOCAL_BASE_RATE_WPM)),
        )
        cls._validate_positive("local.base_rate_wpm", local.base_rate_wpm)

        # ─────────────────────────────────────────────────────────────────────
        # Remote fallback (with environment variable override)
        # ─────────────────────────────────────────────────────────────────────
        remote_raw = raw.get("remote", {})
        remote_enabled = os.getenv("TTS_FALLBACK_REMOTE_ENABLED")
        remote = RemoteConfig(
            enabled=remote_enabled != "0" if remote_enabled is not None
                else bool(remote_raw.get("enabled", Defaults.REMOTE_ENABLED)),
            client_id=str(remote_raw.get("client_id", Defaults.REMOTE_CLIENT_ID)),
            mirrors=tuple(str(m) for m in remote_raw.get("mirrors", Defaults.REMOTE_MIRRORS)),
            start_timeout_s=float(remote_raw.get("start_timeout_s", Defaults.REMOTE_START_TIMEOUT_S)),
            user_agent=str(remote_raw.get("user_agent", Defaults.REMOTE_USER_AGENT)),
            player_command=cls._as_command(remote_raw.get("player_command", Defaults.REMOTE_PLAYER_COMMAND)),
        )
        if remote.enabled and not remote.mirrors:
            raise ConfigValidationError("remote.mirrors must list at least one endpoint when remote is enabled")
        for template in remote.mirrors:
            cls._validate_mirror_template(template)
        cls._validate_positive("remote.start_timeout_s", remote.start_timeout_s)
        if not remote.player_command:
            raise ConfigValidationError("remote.player_command must not be empty")

        # ─────────────────────────────────────────────────────────────────────
        # Diagnostics
        # ─────────────────────────────────────────────────────────────────────
        diagnostics_raw = raw.get("diagnostics", {})
        diagnostics = DiagnosticsConfig(
            delay_s=float(diagnostics_raw.get("delay_s", Defaults.DIAGNOSTICS_DELAY_S)),
            run_on_startup=bool(diagnostics_raw.get("run_on_startup", Defaults.DIAGNOSTICS_RUN_ON_STARTUP)),
        )
        cls._validate_non_negative("diagnostics.delay_s", diagnostics.delay_s)

        # ─────────────────────────────────────────────────────────────────────
        # Logging configuration
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {})
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            speech=speech,
            voices=voices,
            local=local,
            remote=remote,
            diagnostics=diagnostics,
            logging=logging_cfg,
        )

    @staticmethod
    def _as_command(value: Any) -> Tuple[str, ...]:
        """Accept a player command as a list or a whitespace-separated string."""
        if isinstance(value, str):
            return tuple(value.split())
        return tuple(str(part) for part in value)

    @staticmethod
    def _validate_mirror_template(template: str) -> None:
        """A mirror template needs {text} and may only use {lang}, {client} and {text}."""
        try:
            fields = {name for _, name, _, _ in string.Formatter().parse(template) if name is not None}
        except ValueError as exc:
            raise ConfigValidationError(f"remote mirror template is malformed ({exc}): {template}") from None
        unknown = fields - MIRROR_PLACEHOLDERS
        if unknown:
            raise ConfigValidationError(
                f"remote mirror template uses unknown placeholders {sorted(unknown)}: {template}"
            )
        if "text" not in fields:
            raise ConfigValidationError(f"remote mirror template lacks a {{text}} placeholder: {template}")

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0) and finite."""
        if not math.isfinite(value) or value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get validated SpeechServiceConfig.

    Attributes:
        raw: Dictionary of raw configuration values.
    """
    raw: Dict[str, Any]

    def get_service_config(self) -> SpeechServiceConfig:
        """
        Get validated SpeechServiceConfig from these settings.

        Returns:
            Validated configuration object.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return SpeechServiceConfig.from_settings(self)


def settings_path() -> str:
    """Resolve the settings file path (TTS_FALLBACK_SETTINGS or the default)."""
    return os.getenv("TTS_FALLBACK_SETTINGS", "config/settings.yaml")


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML configuration file.

    Environment variable overrides:
        - TTS_FALLBACK_SETTINGS: Settings file path (when path is None)
        - TTS_FALLBACK_LANGUAGE: Override speech.language

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path or settings_path())
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    lang = os.getenv("TTS_FALLBACK_LANGUAGE")
    if lang:
        raw.setdefault("speech", {})["language"] = lang

    return Settings(raw=raw)
