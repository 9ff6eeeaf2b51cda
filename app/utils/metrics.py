"""
Metrics Collection.

Counters and timers for recurring task mutations, repository failures and
digest publishing.
"""

import time
from typing import Dict, Any, Callable
from collections import defaultdict
from datetime import datetime, timezone
from functools import wraps
import threading


class MetricsCollector:
    """Collects and manages metrics for the recurring routines API."""

    def __init__(self):
        """Initialize metrics collector."""
        self.metrics = defaultdict(int)
        self.timers = defaultdict(float)
        self.lock = threading.Lock()
        self.reset()

    def reset(self):
        """Zero every counter and timer."""
        with self.lock:
            self.metrics.clear()
            self.timers.clear()
            self.metrics["recurring_tasks_created_total"] = 0
            self.metrics["recurring_tasks_updated_total"] = 0
            self.metrics["recurring_tasks_deleted_total"] = 0
            self.metrics["completions_toggled_total"] = 0
            self.metrics["repository_errors_total"] = 0
            self.metrics["digests_published_total"] = 0

    def increment_counter(self, metric_name: str, value: int = 1):
        """Increment a counter metric."""
        with self.lock:
            self.metrics[metric_name] += value

    def record_timer(self, metric_name: str, duration: float):
        """Record a timing metric."""
        with self.lock:
            self.timers[metric_name] += duration

    def get_metrics(self) -> Dict[str, Any]:
        """Get current metrics values."""
        with self.lock:
            return {
                "counters": dict(self.metrics),
                "timers": dict(self.timers),
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

    def time_operation(self, metric_name: str) -> Callable:
        """Decorator accumulating the wall time spent in a function."""
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    return func(*args, **kwargs)
                finally:
                    self.record_timer(metric_name, time.time() - start_time)
            return wrapper
        return decorator


# Global metrics instance
metrics_collector = MetricsCollector()
