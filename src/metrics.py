"""
Compliance Operation Metrics.

In-process counters and timings for the compliance use cases:
- Balance computations (timing)
- Ledger writes by kind, rejected writes
- Pools created, valid vs invalid

Usage:
    from src.metrics import metrics, timed

    @timed("compute_balance")
    def compute_balance(...):
        ...

    metrics.increment("ledger_banked")

    summary = metrics.get_summary()
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from threading import Lock
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class TimingStats:
    """Statistics for a timed operation."""
    name: str
    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count > 0 else 0.0

    def record(self, duration_ms: float):
        self.count += 1
        self.total_ms += duration_ms
        self.max_ms = max(self.max_ms, duration_ms)

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "avg_ms": round(self.avg_ms, 3),
            "max_ms": round(self.max_ms, 3),
        }


class ComplianceMetrics:
    """Thread-safe counters and timings for compliance operations."""

    # Threshold for warning on slow operations (ms)
    SLOW_THRESHOLD_MS = 250.0

    def __init__(self):
        self._timings: Dict[str, TimingStats] = {}
        self._counters: Dict[str, int] = {}
        self._lock = Lock()
        self._start_time = datetime.now()

    @contextmanager
    def timer(self, name: str):
        """
        Context manager for timing a block of code.

        Usage:
            with metrics.timer("create_pool"):
                service.create_pool(...)
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._record_timing(name, elapsed_ms)

    def _record_timing(self, name: str, elapsed_ms: float):
        with self._lock:
            if name not in self._timings:
                self._timings[name] = TimingStats(name=name)
            self._timings[name].record(elapsed_ms)

        if elapsed_ms > self.SLOW_THRESHOLD_MS:
            logger.warning(
                f"Slow operation: {name} took {elapsed_ms:.1f}ms "
                f"(threshold: {self.SLOW_THRESHOLD_MS}ms)"
            )

    def increment(self, name: str, amount: int = 1):
        """Increment a counter."""
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + amount

    def get_counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_timing(self, name: str) -> Optional[TimingStats]:
        with self._lock:
            return self._timings.get(name)

    def get_summary(self) -> dict:
        """Get complete metrics summary."""
        with self._lock:
            uptime = (datetime.now() - self._start_time).total_seconds()
            return {
                "uptime_seconds": round(uptime, 1),
                "timings": {name: stats.to_dict() for name, stats in self._timings.items()},
                "counters": self._counters.copy(),
            }

    def reset(self):
        """Reset all metrics."""
        with self._lock:
            self._timings.clear()
            self._counters.clear()
            self._start_time = datetime.now()


# Global metrics instance
metrics = ComplianceMetrics()


def timed(name: str):
    """
    Decorator to time a function.

    Usage:
        @timed("bank_surplus")
        def bank_surplus(...):
            ...
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            with metrics.timer(name):
                return func(*args, **kwargs)
        return wrapper
    return decorator
