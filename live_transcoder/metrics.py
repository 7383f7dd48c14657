"""Prometheus metrics for live transcoders."""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, generate_latest

logger = logging.getLogger(__name__)


class TranscoderMetrics:
    """Prometheus metrics shared by every transcoder of a registry.

    Provides counters for session and process lifecycle events, gauges for
    current load and a histogram of time-to-ready.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """Initialize Prometheus metrics.

        Args:
            registry: Collector registry (defaults to the global registry)
        """
        self.registry = registry if registry is not None else REGISTRY

        # Counters
        self.sessions_started_total = Counter(
            "tablo_live_sessions_started_total",
            "Total number of device watch sessions started",
            registry=self.registry,
        )

        self.session_failures_total = Counter(
            "tablo_live_session_failures_total",
            "Total number of failed watch session requests",
            registry=self.registry,
        )

        self.ffmpeg_spawns_total = Counter(
            "tablo_live_ffmpeg_spawns_total",
            "Total number of FFmpeg processes started",
            registry=self.registry,
        )

        self.ffmpeg_restarts_total = Counter(
            "tablo_live_ffmpeg_restarts_total",
            "Total number of FFmpeg process restarts",
            registry=self.registry,
        )

        self.errors_total = Counter(
            "tablo_live_errors_total",
            "Total number of transcoder errors",
            ["kind"],  # SessionUnavailable, ProcessSpawnFailure, ...
            registry=self.registry,
        )

        self.keepalive_failures_total = Counter(
            "tablo_live_keepalive_failures_total",
            "Total number of failed session keepalives",
            registry=self.registry,
        )

        # Gauges
        self.active_transcoders = Gauge(
            "tablo_live_active_transcoders",
            "Number of transcoders currently serving a playlist",
            registry=self.registry,
        )

        self.consumers = Gauge(
            "tablo_live_consumers",
            "Number of consumers across all transcoders",
            registry=self.registry,
        )

        # Histograms
        self.time_to_ready_seconds = Histogram(
            "tablo_live_time_to_ready_seconds",
            "Time from start request to first playlist write",
            buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0),
            registry=self.registry,
        )

        logger.info("Transcoder metrics initialized")

    def record_session_started(self) -> None:
        self.sessions_started_total.inc()

    def record_session_failure(self) -> None:
        self.session_failures_total.inc()

    def record_ffmpeg_spawn(self) -> None:
        self.ffmpeg_spawns_total.inc()

    def record_ffmpeg_restart(self) -> None:
        self.ffmpeg_restarts_total.inc()

    def record_error(self, error: Exception) -> None:
        """Count an error by its class name."""
        self.errors_total.labels(kind=type(error).__name__).inc()

    def record_keepalive_failure(self) -> None:
        self.keepalive_failures_total.inc()

    def record_time_to_ready(self, duration_seconds: float) -> None:
        self.time_to_ready_seconds.observe(duration_seconds)

    def transcoder_activated(self) -> None:
        self.active_transcoders.inc()

    def transcoder_deactivated(self) -> None:
        self.active_transcoders.dec()

    def consumer_added(self) -> None:
        self.consumers.inc()

    def consumers_removed(self, count: int = 1) -> None:
        if count > 0:
            self.consumers.dec(count)

    def get_metrics_text(self) -> bytes:
        """Get metrics in Prometheus exposition format."""
        return generate_latest(self.registry)
