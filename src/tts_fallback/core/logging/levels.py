"""
Log Level Definitions and Mapping.

tts-fallback uses numeric levels 1-4 instead of Python's named levels:
    1 = MINIMAL  - Startup, shutdown, total speech failures
    2 = NORMAL   - Speak lifecycle and fallback transitions (default)
    3 = VERBOSE  - Per-mirror attempts and catalog retries
    4 = DEBUG    - Internal state (player state, callback guards)

Mapping to Python Levels:
    MINIMAL (1) -> logging.WARNING (30)
    NORMAL (2)  -> logging.INFO (20)
    VERBOSE (3) -> logging.DEBUG (10)
    DEBUG (4)   -> logging.DEBUG - 5 (5, TRACE)

Usage:
    from tts_fallback.core.logging.levels import LogLevel, coerce_level

    level = coerce_level("VERBOSE")  # LogLevel.VERBOSE
    level = coerce_level(3)          # LogLevel.VERBOSE
"""
from __future__ import annotations

import logging
from enum import IntEnum
from typing import Any


class LogLevel(IntEnum):
    """Numeric log levels, increasing verbosity from 1 to 4."""
    MINIMAL = 1
    NORMAL = 2
    VERBOSE = 3
    DEBUG = 4


# Numeric level -> Python logging level used by the console handler
LEVEL_MAP = {
    LogLevel.MINIMAL: logging.WARNING,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG - 5,
}

LEVEL_NAMES = {
    1: "MINIMAL",
    2: "NORMAL",
    3: "VERBOSE",
    4: "DEBUG",
}

_NAME_MAP = {
    "MINIMAL": LogLevel.MINIMAL,
    "NORMAL": LogLevel.NORMAL,
    "VERBOSE": LogLevel.VERBOSE,
    "DEBUG": LogLevel.DEBUG,
    "TRACE": LogLevel.DEBUG,
    # Python level names
    "CRITICAL": LogLevel.MINIMAL,
    "ERROR": LogLevel.MINIMAL,
    "WARNING": LogLevel.MINIMAL,
    "WARN": LogLevel.MINIMAL,
    "INFO": LogLevel.NORMAL,
    # Numeric strings
    "1": LogLevel.MINIMAL,
    "2": LogLevel.NORMAL,
    "3": LogLevel.VERBOSE,
    "4": LogLevel.DEBUG,
}


def coerce_level(value: Any) -> LogLevel:
    """
    Convert various inputs to LogLevel enum.

    Accepts a LogLevel, an integer 1-4, a Python logging level integer
    (WARNING -> MINIMAL, INFO -> NORMAL, lower -> DEBUG), a level name
    ("VERBOSE", "info", ...) or a numeric string.

    Args:
        value: Input to convert.

    Returns:
        The corresponding LogLevel, NORMAL if the input cannot be parsed.

    Examples:
        >>> coerce_level("DEBUG")
        <LogLevel.DEBUG: 4>

        >>> coerce_level(logging.WARNING)
        <LogLevel.MINIMAL: 1>
    """
    if isinstance(value, LogLevel):
        return value

    if isinstance(value, int):
        if 1 <= value <= 4:
            return LogLevel(value)
        if value >= logging.WARNING:
            return LogLevel.MINIMAL
        if value >= logging.INFO:
            return LogLevel.NORMAL
        return LogLevel.DEBUG

    if isinstance(value, str):
        return _NAME_MAP.get(value.upper().strip(), LogLevel.NORMAL)

    return LogLevel.NORMAL
