"""
tts-fallback Structured Logging Module.

This module provides a unified logging system with:
    - Numeric log levels (1-4) for simplified configuration
    - Colored console output for human readability
    - JSONL file output for machine parsing and analysis
    - Correlation ids tying together one speak call's log lines

Log Levels:
    1 = MINIMAL  - Startup, shutdown, total speech failures
    2 = NORMAL   - Speak lifecycle and fallback transitions (default)
    3 = VERBOSE  - Per-mirror attempts and catalog retries
    4 = DEBUG    - Internal state, tracing

Configuration:
    export TTS_FALLBACK_LOG_LEVEL=3  # VERBOSE
    export TTS_FALLBACK_NO_COLOR=1   # Disable colors

    In settings.yaml:
        logging:
          level: 2
          log_dir: logs
          jsonl_file: tts-fallback.jsonl

Usage:
    from tts_fallback.core.logging import get_logger, info, warn, verbose

    log = get_logger("tts-fallback.mymodule")

    info(log, "speak_start", chars=42, lang="ja-JP")
    warn(log, "local_failed", code="synthesis-failed")
    verbose(log, "mirror_attempt", mirror=2, total=3)

Module Structure:
    - levels.py: LogLevel enum and level mapping
    - colors.py: ANSI color codes and terminal detection
    - context.py: Correlation id and configuration state
    - formatters.py: JsonlFormatter and ColoredConsoleFormatter
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from . import colors
from .levels import LogLevel, LEVEL_MAP, LEVEL_NAMES, coerce_level
from .colors import (
    Colors,
    colorize,
    field_color,
    get_tag_color,
    seconds_color,
    severity_color,
    supports_color,
)
from .context import (
    get_request_id,
    set_request_id,
    get_level,
    set_level,
    get_level_name,
    is_configured,
    set_configured,
    set_log_config,
    read_logging_config,
)
from .formatters import JsonlFormatter, ColoredConsoleFormatter

# Python level used for handlers that must see everything (DEBUG helper emits at 5)
_ALL = logging.DEBUG - 5


def configure_logging(level: Optional[int | str | LogLevel] = None, force: bool = False) -> None:
    """
    Configure the "tts-fallback" logger tree.

    The console handler writes to stdout at the configured level; when
    logging.log_dir is set a rotating JSONL file receives every record.
    The host application's root logger is left alone.

    Args:
        level: Log level (1-4, level name, or LogLevel enum)
        force: Force reconfiguration even if already configured
    """
    if is_configured() and not force:
        return

    colors.USE_COLORS = supports_color()

    log_config = read_logging_config()
    set_log_config(log_config)

    current_level = coerce_level(level or log_config.get("level", LogLevel.NORMAL))
    set_level(current_level)

    tree = logging.getLogger("tts-fallback")
    tree.setLevel(_ALL)
    tree.propagate = False
    tree.handlers = []

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(LEVEL_MAP.get(current_level, logging.INFO))
    console.setFormatter(ColoredConsoleFormatter())
    tree.addHandler(console)

    log_dir = log_config.get("log_dir")
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            Path(log_dir) / str(log_config.get("jsonl_file", "tts-fallback.jsonl")),
            maxBytes=int(log_config.get("rotate_max_bytes", 10 * 1024 * 1024)),
            backupCount=int(log_config.get("rotate_backup_count", 5)),
            encoding="utf-8",
            delay=True,
        )
        file_handler.setLevel(_ALL)
        file_handler.setFormatter(JsonlFormatter())
        tree.addHandler(file_handler)

    set_configured(True)


def get_logger(name: str = "tts-fallback") -> logging.Logger:
    """Get a logger instance, configuring logging if needed."""
    configure_logging()
    return logging.getLogger(name)


def _log(logger: logging.Logger, level: int, tag: str, numeric_level: int, msg: str, fields: dict) -> None:
    if numeric_level > get_level():
        return

    logger.log(
        level,
        msg,
        extra={
            "tag": tag,
            "request_id": get_request_id(),
            "event": fields.pop("event", None),
            "seconds": fields.pop("seconds", None),
            "extra_data": fields or None,
            "numeric_level": numeric_level,
        },
    )


# Level 1 (MINIMAL): startup failures and speech that could not be played at all

def error(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _log(logger, logging.ERROR, "ERROR", 1, msg, fields)


def fail(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """A speak call ended without audio (remote exhausted, unsupported language)."""
    _log(logger, logging.ERROR, "FAIL", 1, msg, fields)


# Level 2 (NORMAL): speak lifecycle and fallback transitions

def info(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _log(logger, logging.INFO, "INFO", 2, msg, fields)


def warn(logger: logging.Logger, msg: str, **fields: Any) -> None:
    _log(logger, logging.WARNING, "WARN", 2, msg, fields)


def success(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """A speak call finished on some route."""
    _log(logger, logging.INFO, "SUCCESS", 2, msg, fields)


# Level 3 (VERBOSE) and 4 (DEBUG)

def verbose(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Per-mirror attempts, catalog retries, local voice selection."""
    _log(logger, logging.DEBUG, "INFO", 3, msg, fields)


def debug(logger: logging.Logger, msg: str, **fields: Any) -> None:
    """Player state transitions and other internals."""
    _log(logger, _ALL, "DEBUG", 4, msg, fields)


__all__ = [
    "LogLevel",
    "LEVEL_MAP",
    "LEVEL_NAMES",
    "coerce_level",
    "Colors",
    "supports_color",
    "colorize",
    "get_tag_color",
    "field_color",
    "seconds_color",
    "severity_color",
    "get_request_id",
    "set_request_id",
    "get_level",
    "set_level",
    "get_level_name",
    "JsonlFormatter",
    "ColoredConsoleFormatter",
    "configure_logging",
    "get_logger",
    "error",
    "fail",
    "info",
    "warn",
    "success",
    "verbose",
    "debug",
]
