"""
Stage timing and metrics collection.

Pipeline stages are wrapped with ``track_performance``; durations land in a
bounded, thread-safe in-memory store exposed by ``/api/metrics``.
"""
import inspect
import logging
import threading
import time
from collections import defaultdict, deque
from functools import wraps
from typing import Any, Deque, Dict, Optional

logger = logging.getLogger(__name__)

MAX_SAMPLES_PER_METRIC = 1000

_metrics_lock = threading.Lock()
_metrics: Dict[str, Deque[Dict[str, Any]]] = defaultdict(lambda: deque(maxlen=MAX_SAMPLES_PER_METRIC))


def _percentile(sorted_values, fraction: float) -> float:
    index = min(len(sorted_values) - 1, int(len(sorted_values) * fraction))
    return sorted_values[index]


class PerformanceMonitor:
    """Record and summarize stage durations."""

    @staticmethod
    def record_metric(name: str, value: float, metadata: Optional[Dict[str, Any]] = None):
        """
        Record one measurement.

        Args:
            name: Metric name (e.g. 'profile_dataset', 'request_duration')
            value: Duration in seconds
            metadata: Optional context (correlation_id, status, ...)
        """
        with _metrics_lock:
            _metrics[name].append({
                'value': value,
                'timestamp': time.time(),
                'metadata': metadata or {},
            })

    @staticmethod
    def get_stats(metric_name: str) -> Optional[Dict[str, float]]:
        """Count, min, max, mean and p50/p95/p99 for one metric, or None."""
        with _metrics_lock:
            samples = list(_metrics.get(metric_name, ()))
        if not samples:
            return None

        values = sorted(s['value'] for s in samples)
        errors = sum(1 for s in samples if s['metadata'].get('status') == 'error')
        return {
            'count': len(values),
            'errors': errors,
            'min': values[0],
            'max': values[-1],
            'mean': sum(values) / len(values),
            'p50': _percentile(values, 0.50),
            'p95': _percentile(values, 0.95),
            'p99': _percentile(values, 0.99),
        }

    @staticmethod
    def get_all_metrics() -> Dict[str, Dict[str, float]]:
        with _metrics_lock:
            names = list(_metrics.keys())
        return {name: PerformanceMonitor.get_stats(name) for name in names}

    @staticmethod
    def clear_metrics():
        """Clear all metrics (useful for testing)."""
        with _metrics_lock:
            _metrics.clear()


def _finish(metric_name: str, started: float, correlation_id: Optional[str], error: Optional[Exception] = None):
    duration = time.perf_counter() - started
    metadata: Dict[str, Any] = {'correlation_id': correlation_id, 'status': 'error' if error else 'success'}
    if error is not None:
        metadata['error'] = type(error).__name__
    PerformanceMonitor.record_metric(metric_name, duration, metadata)

    if error is None:
        logger.debug(
            f"{metric_name} completed in {duration:.3f}s",
            extra={'metric': metric_name, 'duration': duration},
        )
    else:
        logger.error(
            f"{metric_name} failed after {duration:.3f}s: {error}",
            extra={'metric': metric_name, 'duration': duration},
            exc_info=True,
        )


def _correlation_id(args, kwargs) -> Optional[str]:
    request = kwargs.get('request')
    if request is None and args and hasattr(args[0], 'state'):
        request = args[0]
    if request is not None and hasattr(request, 'state'):
        return getattr(request.state, 'correlation_id', None)
    return None


def track_performance(metric_name: str):
    """
    Decorator recording the wall-clock duration of a function.

    Works on plain functions (the pipeline stages) and on coroutine functions
    (route handlers). Exceptions are recorded and re-raised.

    Usage:
        @track_performance("profile_dataset")
        def profile_dataset(...):
            ...
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                started = time.perf_counter()
                correlation_id = _correlation_id(args, kwargs)
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _finish(metric_name, started, correlation_id, e)
                    raise
                _finish(metric_name, started, correlation_id)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            started = time.perf_counter()
            correlation_id = _correlation_id(args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _finish(metric_name, started, correlation_id, e)
                raise
            _finish(metric_name, started, correlation_id)
            return result
        return sync_wrapper

    return decorator
