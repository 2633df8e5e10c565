"""
Prometheus metrics collection.
"""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Protocol

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
)
from prometheus_client.openmetrics.exposition import (
    CONTENT_TYPE_LATEST,
    generate_latest,
)

from pgqueue.constants import (
    DEFAULT_NAMESPACE,
    METRIC_QUEUE_LEN,
    METRIC_QUEUE_OLDEST_AGE,
    METRIC_TASK_DURATION,
    METRIC_TASKS_CLAIMED,
    METRIC_TASKS_COMPLETED,
)
from pgqueue.types.task import QueueStat

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class StatsSource(Protocol):
    """The part of the queue client the metrics need."""

    async def stats(self) -> Iterable[QueueStat]: ...


def unique_namespaces(namespaces: Iterable[str]) -> list[str]:
    """Sorted, de-duplicated namespaces; the default one if none are given."""
    result = sorted(set(namespaces))
    return result or [DEFAULT_NAMESPACE]


class MetricsCollector:
    """
    Prometheus metrics collector for the task queue.

    Collects metrics for:
    - Queue length per namespace (visible tasks only)
    - Age of the oldest visible task per namespace
    - Tasks claimed and completed by workers
    - Task processing duration
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_len = Gauge(
            METRIC_QUEUE_LEN,
            "Queue length per namespace.",
            ["namespace"],
            registry=self._registry,
        )

        self.queue_oldest_age = Gauge(
            METRIC_QUEUE_OLDEST_AGE,
            "Oldest message age in seconds.",
            ["namespace"],
            registry=self._registry,
        )

        self.tasks_claimed = Counter(
            METRIC_TASKS_CLAIMED,
            "Total number of tasks claimed by workers",
            ["namespace"],
            registry=self._registry,
        )

        self.tasks_completed = Counter(
            METRIC_TASKS_COMPLETED,
            "Total number of tasks resolved by workers",
            ["namespace", "status"],
            registry=self._registry,
        )

        self.task_duration = Histogram(
            METRIC_TASK_DURATION,
            "Task processing duration in seconds",
            ["namespace", "status"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

    def update_queue_stats(
        self,
        stats: Iterable[QueueStat],
        namespaces: Iterable[str],
        now: datetime,
    ) -> None:
        """
        Set the queue gauges for the given namespaces.

        Namespaces without visible tasks report a length and age of 0.
        """
        by_namespace = {stat.namespace: stat for stat in stats}
        for namespace in unique_namespaces(namespaces):
            stat = by_namespace.get(namespace)
            if stat is None:
                self.queue_len.labels(namespace=namespace).set(0)
                self.queue_oldest_age.labels(namespace=namespace).set(0)
                continue
            self.queue_len.labels(namespace=namespace).set(stat.len)
            self.queue_oldest_age.labels(namespace=namespace).set(int(stat.age_seconds(now)))

    async def refresh_queue_stats(
        self,
        source: StatsSource,
        namespaces: Iterable[str],
        now: datetime | None = None,
    ) -> None:
        """Pull current stats from the queue and update the gauges."""
        stats = await source.stats()
        self.update_queue_stats(stats, namespaces, now or datetime.now(UTC))

    def record_task_claimed(self, namespace: str) -> None:
        """Record a task claim."""
        self.tasks_claimed.labels(namespace=namespace).inc()

    def record_task_completed(
        self,
        namespace: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a resolved task."""
        self.tasks_completed.labels(namespace=namespace, status=status).inc()
        self.task_duration.labels(namespace=namespace, status=status).observe(
            duration_seconds
        )

    def get_metrics(self) -> bytes:
        """Get all metrics in OpenMetrics format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


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
