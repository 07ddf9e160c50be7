"""
In-memory metrics sink for testing and debugging.

This sink stores run metrics in memory and provides query capabilities,
useful for tests, debugging, and local development.
"""

from __future__ import annotations

import asyncio
import statistics
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

from ..metrics import MetricsSink, RunMetrics


@dataclass
class MetricsSummary:
    """Summary statistics for a set of runs."""
    count: int = 0
    avg_latency_ms: float = 0.0
    p50_latency_ms: float = 0.0
    total_tokens: int = 0
    error_rate: float = 0.0
    providers: Dict[str, int] = field(default_factory=dict)
    errors: Dict[str, int] = field(default_factory=dict)


class InMemoryMetricsSink(MetricsSink):
    """
    In-memory run metrics storage.

    Features:
    - Fixed-size circular buffer for memory efficiency
    - Lookup by run ID
    - Summary statistics over a time window
    """

    def __init__(self, max_size: int = 10000):
        """
        Initialize the in-memory sink.

        Args:
            max_size: Maximum number of run metrics to store
        """
        self.max_size = max_size
        self._metrics: Deque[Tuple[float, RunMetrics]] = deque(maxlen=max_size)
        self._by_run: Dict[str, RunMetrics] = {}
        self._lock = asyncio.Lock()
        self._flushes = 0

    async def record(self, metrics: RunMetrics) -> None:
        """Record the metrics of a finished run."""
        async with self._lock:
            self._metrics.append((time.time(), metrics))
            self._by_run[metrics.run_id] = metrics

    async def flush(self) -> None:
        """No-op for in-memory sink."""
        self._flushes += 1

    async def get_metrics(
        self,
        run_id: Optional[str] = None,
        provider: Optional[str] = None,
        limit: int = 1000
    ) -> List[RunMetrics]:
        """
        Query stored metrics.

        Args:
            run_id: Filter by run ID
            provider: Filter by provider
            limit: Maximum number of results

        Returns:
            List of matching metrics, oldest first
        """
        async with self._lock:
            if run_id is not None:
                found = self._by_run.get(run_id)
                return [found] if found else []

            results = []
            for _, metric in self._metrics:
                if provider and metric.provider != provider:
                    continue
                results.append(metric)
                if len(results) >= limit:
                    break
            return results

    async def get_summary(self, window_seconds: float = 300) -> MetricsSummary:
        """Summary statistics for runs recorded within the window."""
        async with self._lock:
            start_time = time.time() - window_seconds

            latencies = []
            total_tokens = 0
            error_count = 0
            provider_counts: Dict[str, int] = defaultdict(int)
            error_counts: Dict[str, int] = defaultdict(int)

            for timestamp, metric in self._metrics:
                if timestamp < start_time:
                    continue
                latencies.append(metric.latency_ms)
                total_tokens += metric.input_tokens + metric.output_tokens
                if metric.error_class:
                    error_count += 1
                    error_counts[metric.error_class] += 1
                provider_counts[metric.provider or "unknown"] += 1

            summary = MetricsSummary()
            summary.count = len(latencies)
            if latencies:
                summary.avg_latency_ms = statistics.mean(latencies)
                summary.p50_latency_ms = statistics.median(latencies)
                summary.error_rate = error_count / len(latencies)
            summary.total_tokens = total_tokens
            summary.providers = dict(provider_counts)
            summary.errors = dict(error_counts)
            return summary

    async def clear(self) -> None:
        """Clear all stored metrics."""
        async with self._lock:
            self._metrics.clear()
            self._by_run.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Get current statistics (synchronous for convenience)."""
        total = len(self._metrics)
        errors = sum(1 for _, m in self._metrics if m.error_class)
        return {
            "total_runs": total,
            "total_errors": errors,
            "error_rate": errors / total if total > 0 else 0,
            "flushes": self._flushes,
        }
