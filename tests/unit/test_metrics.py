"""
Unit tests for queue metrics.
"""

from datetime import UTC, datetime, timedelta

import pytest
from prometheus_client import CollectorRegistry

from pgqueue.observability.metrics import MetricsCollector, unique_namespaces
from pgqueue.types.task import QueueStat

NOW = datetime(2030, 1, 1, tzinfo=UTC)


class FakeStatsSource:
    def __init__(self, stats: list[QueueStat]):
        self._stats = stats

    async def stats(self) -> list[QueueStat]:
        return self._stats


@pytest.fixture
def collector() -> MetricsCollector:
    return MetricsCollector(registry=CollectorRegistry())


def test_unique_namespaces():
    """Test that namespaces are sorted and de-duplicated."""
    assert unique_namespaces(["b", "a", "b"]) == ["a", "b"]
    assert unique_namespaces([]) == [""]


class TestQueueGauges:
    """Tests for queue length and age gauges."""

    def test_gauges_per_namespace(self, collector: MetricsCollector):
        """Test that each requested namespace gets its own series."""
        stats = [
            QueueStat(namespace="", len=2, min_created_at=NOW - timedelta(seconds=3)),
            QueueStat(namespace="baz", len=1, min_created_at=NOW - timedelta(seconds=1)),
        ]

        collector.update_queue_stats(stats, ["", "baz"], NOW)
        output = collector.get_metrics().decode()

        assert 'queue_len{namespace=""} 2.0' in output
        assert 'queue_len{namespace="baz"} 1.0' in output
        assert 'queue_oldest_message_age_seconds{namespace=""} 3.0' in output
        assert 'queue_oldest_message_age_seconds{namespace="baz"} 1.0' in output
        assert output.endswith("# EOF\n")

    def test_empty_namespace_reports_zero(self, collector: MetricsCollector):
        """Test that namespaces without visible tasks report zero."""
        collector.update_queue_stats([], ["idle"], NOW)
        output = collector.get_metrics().decode()

        assert 'queue_len{namespace="idle"} 0.0' in output
        assert 'queue_oldest_message_age_seconds{namespace="idle"} 0.0' in output

    def test_unrequested_namespaces_ignored(self, collector: MetricsCollector):
        """Test that only requested namespaces are reported."""
        stats = [QueueStat(namespace="other", len=5, min_created_at=NOW)]

        collector.update_queue_stats(stats, [""], NOW)
        output = collector.get_metrics().decode()

        assert 'namespace="other"' not in output
        assert 'queue_len{namespace=""} 0.0' in output

    def test_age_truncated_to_seconds(self, collector: MetricsCollector):
        """Test that the oldest age is reported in whole seconds."""
        stats = [QueueStat(namespace="", len=1, min_created_at=NOW - timedelta(seconds=2.7))]

        collector.update_queue_stats(stats, [""], NOW)

        assert 'queue_oldest_message_age_seconds{namespace=""} 2.0' in collector.get_metrics().decode()

    @pytest.mark.asyncio
    async def test_refresh_from_source(self, collector: MetricsCollector):
        """Test refreshing gauges from a stats source."""
        source = FakeStatsSource(
            [QueueStat(namespace="baz", len=4, min_created_at=NOW - timedelta(minutes=1))]
        )

        await collector.refresh_queue_stats(source, ["baz"], NOW)
        output = collector.get_metrics().decode()

        assert 'queue_len{namespace="baz"} 4.0' in output
        assert 'queue_oldest_message_age_seconds{namespace="baz"} 60.0' in output


class TestWorkerMetrics:
    """Tests for worker counters."""

    def test_record_claimed_and_completed(self, collector: MetricsCollector):
        collector.record_task_claimed("")
        collector.record_task_completed("", "done", 0.2)
        collector.record_task_completed("", "nacked", 0.1)
        output = collector.get_metrics().decode()

        assert 'tasks_claimed_total{namespace=""} 1.0' in output
        assert 'tasks_completed_total{namespace="",status="done"} 1.0' in output
        assert 'tasks_completed_total{namespace="",status="nacked"} 1.0' in output

    def test_content_type(self, collector: MetricsCollector):
        assert collector.get_content_type().startswith("application/openmetrics-text")
