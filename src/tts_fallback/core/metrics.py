"""
Prometheus Metrics for the Speech Orchestrator.

Metrics Exposed:
    tts_fallback_speak_total             - Counter of speak calls by route and status
    tts_fallback_speak_duration_seconds  - Histogram of speak latency by route
    tts_fallback_mirror_attempts_total   - Counter of remote mirror attempts
    tts_fallback_voices_loaded           - Gauge of on-device voices in the catalog

Usage:
    from tts_fallback.core.metrics import metrics

    metrics.record_speak(route="remote", status="completed", duration=2.4)
    metrics.record_mirror_attempt(mirror=1, status="start_failed")
    metrics.set_voices_loaded(12)

    # /metrics endpoint
    content, content_type = metrics.get_metrics_response()

See Also:
    - api/routes.py: /metrics endpoint definition
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class SpeechMetrics:
    """
    Speech metrics collection using Prometheus client.

    Each instance owns a private CollectorRegistry so that several
    instances (tests, multiple apps in one process) never clash on
    metric names. The module-level ``metrics`` object is the one the
    service reports into.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._speak_total = Counter(
            "tts_fallback_speak_total",
            "Total speak calls",
            ["route", "status"],
            registry=self._registry,
        )

        self._speak_duration = Histogram(
            "tts_fallback_speak_duration_seconds",
            "Speak call duration in seconds",
            ["route"],
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )

        self._mirror_attempts = Counter(
            "tts_fallback_mirror_attempts_total",
            "Remote mirror attempts",
            ["mirror", "status"],
            registry=self._registry,
        )

        self._voices_loaded = Gauge(
            "tts_fallback_voices_loaded",
            "On-device voices currently in the catalog",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_speak(self, route: str, status: str, duration: float) -> None:
        """
        Record a finished speak call.

        Args:
            route: "local", "remote" or "none" (blank input, unsupported)
            status: "completed", "cancelled", "skipped", "exhausted", "unsupported"
            duration: Call duration in seconds
        """
        self._speak_total.labels(route=route, status=status).inc()
        self._speak_duration.labels(route=route).observe(duration)

    def record_mirror_attempt(self, mirror: int, status: str) -> None:
        """Record one remote mirror attempt (1-based mirror index)."""
        self._mirror_attempts.labels(mirror=str(mirror), status=status).inc()

    def set_voices_loaded(self, count: int) -> None:
        self._voices_loaded.set(count)

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Import this to record metrics: from tts_fallback.core.metrics import metrics
metrics = SpeechMetrics()
