"""
User-visible Status Reporting.

The orchestrator reports every speech transition (local attempt, remote
fallback, success, total failure) as a (message, severity) pair. Any
callable with that signature works as a sink; None disables reporting.

StatusBoard is the sink used by the HTTP service: it keeps the most
recent messages so that GET /v1/status can show them.
"""
from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Callable, Deque, Dict, List, Optional

StatusSink = Callable[[str, str], None]


class Severity:
    """Severities understood by status sinks."""
    WARNING = "warning"
    PLAYING = "playing"
    ERROR = "error"


@dataclass(frozen=True)
class StatusMessage:
    message: str
    severity: str
    timestamp: float


class StatusBoard:
    """
    Bounded, thread-safe history of status messages.

    Args:
        capacity: Number of messages retained (oldest dropped first).
    """

    def __init__(self, capacity: int = 20):
        self._messages: Deque[StatusMessage] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def __call__(self, message: str, severity: str) -> None:
        with self._lock:
            self._messages.append(StatusMessage(message=message, severity=severity, timestamp=time.time()))

    @property
    def latest(self) -> Optional[StatusMessage]:
        with self._lock:
            return self._messages[-1] if self._messages else None

    def history(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [asdict(m) for m in self._messages]

    def clear(self) -> None:
        with self._lock:
            self._messages.clear()
