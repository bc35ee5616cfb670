"""
Correlation Context and Configuration State for Logging.

Context Variables:
    Each speak call (and each API request) gets a short correlation id
    stored in a contextvar, so every log line produced while that call
    walks through local synthesis and the remote mirrors carries the same
    id. Contextvars follow asyncio tasks, which is what the orchestrator
    runs on.

Configuration State:
    Module-level variables hold the current numeric level, the resolved
    logging configuration and a flag preventing re-initialization.

Environment Variables:
    - TTS_FALLBACK_LOG_LEVEL: Override log level (1-4 or name)
    - TTS_FALLBACK_LOG_DIR: Directory for the JSONL log file
    - TTS_FALLBACK_JSONL_FILE: JSONL filename
    - TTS_FALLBACK_LOG_ROTATE_BYTES: Max log file size
    - TTS_FALLBACK_LOG_ROTATE_BACKUP: Number of backup files
"""
from __future__ import annotations

import os
from contextvars import ContextVar
from typing import Any, Dict

import yaml

from .levels import LEVEL_NAMES, LogLevel

# "-" marks log lines emitted outside any speak call
_request_id: ContextVar[str] = ContextVar("request_id", default="-")

_configured: bool = False
_log_config: Dict[str, Any] = {}
_current_level: LogLevel = LogLevel.NORMAL


def get_request_id() -> str:
    """Get the correlation id of the current context ("-" if unset)."""
    return _request_id.get()


def set_request_id(rid: str) -> None:
    """
    Set the correlation id for the current context.

    Args:
        rid: Identifier string (typically a 12-char UUID prefix).
    """
    _request_id.set(rid)


def get_level() -> LogLevel:
    """Get current log level."""
    return _current_level


def set_level(level: LogLevel) -> None:
    """Set current log level."""
    global _current_level
    _current_level = level


def get_level_name() -> str:
    """Get current log level as human-readable name."""
    return LEVEL_NAMES.get(_current_level, "NORMAL")


def is_configured() -> bool:
    """Check if configure_logging() has run."""
    return _configured


def set_configured(value: bool) -> None:
    """Set the configured flag."""
    global _configured
    _configured = value


def set_log_config(config: Dict[str, Any]) -> None:
    """Set log configuration dictionary."""
    global _log_config
    _log_config = config


def read_logging_config() -> Dict[str, Any]:
    """
    Read logging configuration from settings file and environment.

    Configuration priority (highest to lowest):
        1. Environment variables (TTS_FALLBACK_LOG_LEVEL, etc.)
        2. settings.yaml logging section
        3. Default values

    A missing or unreadable settings file is not an error here: logging
    must come up before settings are validated.

    Returns:
        Dictionary with resolved logging configuration.
    """
    cfg: Dict[str, Any] = {}

    from tts_fallback.core.config import load_settings, settings_path
    try:
        settings = load_settings(settings_path())
        cfg.update(settings.raw.get("logging", {}) or {})
    except (OSError, yaml.YAMLError):
        pass

    if os.getenv("TTS_FALLBACK_LOG_LEVEL"):
        cfg["level"] = os.environ["TTS_FALLBACK_LOG_LEVEL"]
    if os.getenv("TTS_FALLBACK_LOG_DIR"):
        cfg["log_dir"] = os.environ["TTS_FALLBACK_LOG_DIR"]
    if os.getenv("TTS_FALLBACK_JSONL_FILE"):
        cfg["jsonl_file"] = os.environ["TTS_FALLBACK_JSONL_FILE"]
    if os.getenv("TTS_FALLBACK_LOG_ROTATE_BYTES"):
        try:
            cfg["rotate_max_bytes"] = int(os.environ["TTS_FALLBACK_LOG_ROTATE_BYTES"])
        except ValueError:
            pass  # keep the default
    if os.getenv("TTS_FALLBACK_LOG_ROTATE_BACKUP"):
        try:
            cfg["rotate_backup_count"] = int(os.environ["TTS_FALLBACK_LOG_ROTATE_BACKUP"])
        except ValueError:
            pass  # keep the default

    return cfg
