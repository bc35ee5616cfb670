"""
Log Formatters for JSON and Console Output.

    JsonlFormatter: one JSON object per line for the log file.
    ColoredConsoleFormatter: human-readable colored line for the terminal.

Output Examples:
    JSONL (file):
        {"ts":"2026-10-19T14:30:05+03:00","level":2,"tag":"INFO","message":"speak_start","request_id":"abc123","extra":{"lang":"ja-JP"}}

    Console (colored):
        14:30:05 [ INFO  ] (abc123) fallback route=remote lang=ja-JP remote_lang=ja

Field colors come from colors.field_color and colors.seconds_color.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict

from .colors import Colors, colorize, field_color, get_tag_color, seconds_color


class JsonlFormatter(logging.Formatter):
    """
    Format log records as JSON Lines for file output.

    Output Format:
        {
            "ts": "...",           # ISO timestamp with timezone
            "level": 2,            # Numeric level (1-4)
            "tag": "INFO",
            "message": "speak_start",
            "request_id": "abc123",
            "event": "...",        # optional
            "seconds": 0.5,        # optional
            "extra": {...}         # optional
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).astimezone().isoformat()

        payload: Dict[str, Any] = {
            "ts": ts,
            "level": getattr(record, "numeric_level", 2),
            "tag": getattr(record, "tag", record.levelname),
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
        }

        event = getattr(record, "event", None)
        if event:
            payload["event"] = event

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            payload["seconds"] = seconds

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            payload["extra"] = extra_data

        return json.dumps(payload, ensure_ascii=False, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """
    Format log records with ANSI colors for console output.

    Output Format:
        HH:MM:SS [ TAG   ] (rid) message key=value 0.123s
    """

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        tag = getattr(record, "tag", record.levelname)
        rid = getattr(record, "request_id", "-")

        parts = [colorize(ts, Colors.DIM), colorize(f"[{tag:^7}]", get_tag_color(tag))]
        if rid != "-":
            parts.append(colorize(f"({rid})", Colors.DIM + Colors.CYAN))
        parts.append(record.getMessage())

        event = getattr(record, "event", None)
        if event:
            parts.append(colorize(f"event={event}", Colors.BLUE))

        seconds = getattr(record, "seconds", None)
        if seconds is not None:
            parts.append(colorize(f"{seconds:.3f}s", seconds_color(seconds)))

        for key, value in (getattr(record, "extra_data", None) or {}).items():
            parts.append(colorize(f"{key}={value}", field_color(key, value)))

        return " ".join(parts)
