"""
ANSI Color Utilities for Console Output.

Colors are automatically disabled when:
    - Output is not a TTY (e.g., piped to file)
    - NO_COLOR environment variable is set (standard convention)
    - TTS_FALLBACK_NO_COLOR=1 environment variable is set

Palettes:
    tag:      SUCCESS green, FAIL/ERROR red, WARN yellow, INFO cyan, DEBUG gray
    field:    route, outcome and mirror values in log lines
    severity: status messages (playing, warning, error)

Usage:
    from tts_fallback.core.logging.colors import colorize, severity_color

    print(colorize("[warning] Local speech failed", severity_color("warning")))

See Also:
    - https://no-color.org/ (NO_COLOR standard)
"""
from __future__ import annotations

import os
import sys
from typing import Any


class Colors:
    """ANSI escape code constants for terminal colors."""
    RESET = "\033[0m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    GRAY = "\033[90m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_CYAN = "\033[96m"


def supports_color() -> bool:
    """
    Check if the terminal supports ANSI color codes.

    Checks, in order: TTS_FALLBACK_NO_COLOR=1, NO_COLOR, whether stdout
    is a TTY, and on Windows whether ANSI processing can be enabled.
    """
    if os.getenv("TTS_FALLBACK_NO_COLOR", "0") == "1":
        return False
    if os.getenv("NO_COLOR"):
        return False

    if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
        return False

    if sys.platform == "win32":
        try:
            import ctypes
            kernel32 = ctypes.windll.kernel32
            # STD_OUTPUT_HANDLE = -11, enable virtual terminal processing
            kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7)
            return True
        except (AttributeError, OSError):
            return False

    return True


# Checked once at import time, rechecked by configure_logging()
USE_COLORS = supports_color()


def colorize(text: str, color: str) -> str:
    """Apply ANSI color to text if colors are enabled."""
    if not USE_COLORS:
        return text
    return f"{color}{text}{Colors.RESET}"


_TAG_COLORS = {
    "SUCCESS": Colors.BRIGHT_GREEN,
    "FAIL": Colors.BRIGHT_RED,
    "ERROR": Colors.BRIGHT_RED,
    "WARN": Colors.BRIGHT_YELLOW,
    "WARNING": Colors.BRIGHT_YELLOW,
    "INFO": Colors.BRIGHT_CYAN,
    "DEBUG": Colors.GRAY,
}

_ROUTE_COLORS = {"local": Colors.GREEN, "remote": Colors.YELLOW}
_OUTCOME_COLORS = {"completed": Colors.GREEN, "cancelled": Colors.GRAY, "skipped": Colors.GRAY}

_SEVERITY_COLORS = {
    "playing": Colors.BRIGHT_GREEN,
    "warning": Colors.BRIGHT_YELLOW,
    "error": Colors.BRIGHT_RED,
}


def get_tag_color(tag: str) -> str:
    return _TAG_COLORS.get(tag.upper(), Colors.WHITE)


def field_color(key: str, value: Any) -> str:
    """
    Color for one key=value pair of a log line.

    route is green for local and yellow for remote; an outcome other than
    completed, cancelled or skipped (exhausted, unsupported) is red;
    mirror indices are blue. Everything else is dimmed.
    """
    if key == "route" and value in _ROUTE_COLORS:
        return _ROUTE_COLORS[value]
    if key == "outcome":
        return _OUTCOME_COLORS.get(value, Colors.RED)
    if key == "mirror":
        return Colors.BLUE
    return Colors.DIM


def severity_color(severity: str) -> str:
    return _SEVERITY_COLORS.get(severity, Colors.WHITE)


def seconds_color(seconds: float) -> str:
    """Green under half a second, yellow under three, red otherwise."""
    if seconds < 0.5:
        return Colors.GREEN
    if seconds < 3.0:
        return Colors.YELLOW
    return Colors.RED
