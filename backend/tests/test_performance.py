"""
Tests for performance monitoring.
"""
import asyncio

import pytest

from firstlook.core.performance import MAX_SAMPLES_PER_METRIC, PerformanceMonitor, track_performance
from firstlook.services.pipeline import analyze


def test_performance_monitor_record():
    """Test recording performance metrics."""
    PerformanceMonitor.clear_metrics()

    PerformanceMonitor.record_metric("test_metric", 1.5, {"test": "data"})
    PerformanceMonitor.record_metric("test_metric", 2.0)
    PerformanceMonitor.record_metric("test_metric", 0.5)

    stats = PerformanceMonitor.get_stats("test_metric")

    assert stats is not None
    assert stats["count"] == 3
    assert stats["errors"] == 0
    assert stats["min"] == 0.5
    assert stats["max"] == 2.0
    assert stats["mean"] == pytest.approx(1.333, rel=0.01)
    assert stats["p50"] == 1.5


def test_performance_store_is_bounded():
    """Only the most recent samples are kept per metric."""
    PerformanceMonitor.clear_metrics()
    for i in range(MAX_SAMPLES_PER_METRIC + 50):
        PerformanceMonitor.record_metric("bounded", float(i))

    stats = PerformanceMonitor.get_stats("bounded")
    assert stats["count"] == MAX_SAMPLES_PER_METRIC
    assert stats["min"] == 50.0


def test_performance_decorator_sync():
    """Test performance tracking decorator on sync function."""
    PerformanceMonitor.clear_metrics()

    @track_performance("test_function")
    def double(x: int) -> int:
        return x * 2

    assert double(5) == 10

    stats = PerformanceMonitor.get_stats("test_function")
    assert stats is not None
    assert stats["count"] == 1
    assert stats["mean"] >= 0


def test_performance_decorator_records_errors():
    """Failures are recorded and re-raised."""
    PerformanceMonitor.clear_metrics()

    @track_performance("failing_function")
    def fail():
        raise ValueError("boom")

    with pytest.raises(ValueError):
        fail()

    stats = PerformanceMonitor.get_stats("failing_function")
    assert stats["count"] == 1
    assert stats["errors"] == 1


def test_performance_decorator_async():
    """Test performance tracking decorator on async function."""
    PerformanceMonitor.clear_metrics()

    @track_performance("test_async_function")
    async def double_later(x: int) -> int:
        await asyncio.sleep(0.01)
        return x * 2

    assert asyncio.run(double_later(5)) == 10

    stats = PerformanceMonitor.get_stats("test_async_function")
    assert stats is not None
    assert stats["count"] == 1
    assert stats["mean"] > 0


def test_pipeline_stages_are_tracked(skewed_rows):
    """Each pipeline stage records a timing."""
    PerformanceMonitor.clear_metrics()
    analyze(skewed_rows)

    metrics = PerformanceMonitor.get_all_metrics()
    for stage in ("profile_dataset", "select_kpis", "generate_charts", "generate_insights", "analyze"):
        assert metrics[stage]["count"] == 1


def test_performance_monitor_clear():
    """Test clearing metrics."""
    PerformanceMonitor.record_metric("test", 1.0)
    assert PerformanceMonitor.get_stats("test") is not None

    PerformanceMonitor.clear_metrics()
    assert PerformanceMonitor.get_stats("test") is None
