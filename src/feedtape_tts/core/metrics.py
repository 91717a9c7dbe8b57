"""
Prometheus Metrics for the Synthesis Service.

Collectors live on a private CollectorRegistry so the service can share a
process with other instrumented code. When prometheus_client is not
importable every recording method is a no-op.

Metrics Exposed:
    tts_requests_total{provider,status}            - synthesize() outcomes
    tts_request_duration_seconds{provider,cache}   - end-to-end latency
    tts_audio_bytes_total                          - audio bytes returned
    tts_characters_synthesized_total{provider}     - characters charged
    tts_cache_hits_total / tts_cache_misses_total  - result cache lookups
    tts_provider_calls_total{provider,status}      - upstream batch calls
    tts_provider_call_duration_seconds{provider}   - upstream call latency
    tts_quota_rejections_total{reason}             - PaymentRequired outcomes

Usage:
    from feedtape_tts.core.metrics import metrics

    metrics.record_request("polly", "success", 1.2, cache_status="miss", audio_bytes=48213)
    content, content_type = metrics.get_metrics_response()
"""
from __future__ import annotations

from typing import Optional

try:
    from prometheus_client import (
        CONTENT_TYPE_LATEST,
        CollectorRegistry,
        Counter,
        Histogram,
        generate_latest,
    )
    PROMETHEUS_AVAILABLE = True
except ImportError:
    PROMETHEUS_AVAILABLE = False
    CollectorRegistry = None


class TTSMetrics:
    """
    Metric collection facade.

    Use the module-level ``metrics`` instance. Prometheus collectors are
    thread-safe, so no locking is needed here.

    Attributes:
        enabled: Whether prometheus_client is available.
    """

    def __init__(self):
        self._enabled = PROMETHEUS_AVAILABLE
        self._registry: Optional["CollectorRegistry"] = None

        if self._enabled:
            self._setup_metrics()

    def _setup_metrics(self) -> None:
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "tts_requests_total",
            "Total synthesize() calls by outcome",
            ["provider", "status"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "tts_request_duration_seconds",
            "End-to-end synthesize() duration in seconds",
            ["provider", "cache"],
            buckets=(0.05, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "tts_audio_bytes_total",
            "Total audio bytes returned",
            registry=self._registry,
        )
        self._characters_total = Counter(
            "tts_characters_synthesized_total",
            "Characters synthesized and charged to users",
            ["provider"],
            registry=self._registry,
        )
        self._cache_hits = Counter(
            "tts_cache_hits_total",
            "Result cache hits",
            registry=self._registry,
        )
        self._cache_misses = Counter(
            "tts_cache_misses_total",
            "Result cache misses",
            registry=self._registry,
        )
        self._provider_calls = Counter(
            "tts_provider_calls_total",
            "Upstream synthesis calls by outcome",
            ["provider", "status"],
            registry=self._registry,
        )
        self._provider_duration = Histogram(
            "tts_provider_call_duration_seconds",
            "Upstream synthesis call duration in seconds",
            ["provider"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )
        self._quota_rejections = Counter(
            "tts_quota_rejections_total",
            "Requests rejected for quota or trial reasons",
            ["reason"],
            registry=self._registry,
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def record_request(
        self,
        provider: str,
        status: str,
        duration: float,
        cache_status: str = "miss",
        audio_bytes: int = 0,
    ) -> None:
        """
        Record a finished synthesize() call.

        Args:
            provider: Active provider name ("polly", "openai").
            status: "success" or an error kind ("invalid_input", ...).
            duration: Seconds spent in synthesize().
            cache_status: "hit", "miss" or "off".
            audio_bytes: Size of the returned audio.
        """
        if not self._enabled:
            return

        self._requests_total.labels(provider=provider, status=status).inc()
        self._request_duration.labels(provider=provider, cache=cache_status).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_characters(self, provider: str, chars: int) -> None:
        if not self._enabled or chars <= 0:
            return
        self._characters_total.labels(provider=provider).inc(chars)

    def record_cache(self, result: str) -> None:
        """Record a cache lookup, result is "hit" or "miss"."""
        if not self._enabled:
            return
        if result == "hit":
            self._cache_hits.inc()
        else:
            self._cache_misses.inc()

    def record_provider_call(self, provider: str, status: str, duration: float) -> None:
        if not self._enabled:
            return
        self._provider_calls.labels(provider=provider, status=status).inc()
        self._provider_duration.labels(provider=provider).observe(duration)

    def record_quota_rejection(self, reason: str) -> None:
        if not self._enabled:
            return
        self._quota_rejections.labels(reason=reason).inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Metrics in Prometheus text format.

        Returns:
            Tuple of (content_bytes, content_type).
        """
        if not self._enabled:
            return (
                b"# Metrics not available (prometheus_client not installed)\n",
                "text/plain; charset=utf-8",
            )
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Import this to record metrics: from feedtape_tts.core.metrics import metrics
metrics = TTSMetrics()
