"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
    start_http_server,
)

from lock_reaper.constants import (
    METRIC_LOCKS_REAPED,
    METRIC_ORPHANS_FOUND,
    METRIC_REAPER_DURATION,
    METRIC_REAPER_PASSES,
    OUTCOME_INVALID_CONFIG,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the lock reaper.

    Collects metrics for:
    - Reaper passes by strategy and outcome
    - Locks reclaimed
    - Orphans found by the paginated strategy
    - Pass duration
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.reaper_passes = Counter(
            METRIC_REAPER_PASSES,
            "Total number of reaper passes",
            ["strategy", "outcome"],
            registry=self._registry,
        )

        self.locks_reaped = Counter(
            METRIC_LOCKS_REAPED,
            "Total number of orphaned locks reclaimed",
            ["strategy"],
            registry=self._registry,
        )

        self.orphans_found = Counter(
            METRIC_ORPHANS_FOUND,
            "Total number of orphaned digests found client-side",
            registry=self._registry,
        )

        self.reaper_duration = Histogram(
            METRIC_REAPER_DURATION,
            "Reaper pass duration in seconds",
            ["strategy"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 300.0),
            registry=self._registry,
        )

    def record_pass(
        self,
        strategy: str,
        outcome: str,
        duration_seconds: float,
        reaped: int = 0,
    ) -> None:
        """Record a finished reaper pass."""
        self.reaper_passes.labels(strategy=strategy, outcome=outcome).inc()
        self.reaper_duration.labels(strategy=strategy).observe(duration_seconds)
        if reaped:
            self.locks_reaped.labels(strategy=strategy).inc(reaped)

    def record_invalid_config(self, strategy: str) -> None:
        """Record a pass refused for an unknown strategy. No duration is observed."""
        self.reaper_passes.labels(strategy=strategy, outcome=OUTCOME_INVALID_CONFIG).inc()

    def record_orphans_found(self, count: int) -> None:
        """Record orphans found by client-side discovery."""
        self.orphans_found.inc(count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics


def start_metrics_server(port: int) -> None:
    """
    Expose the default registry over HTTP for scraping.

    Args:
        port: Port to listen on.
    """
    start_http_server(port)
