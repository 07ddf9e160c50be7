"""Observability layer for runs.

This layer handles:
- Structured run logging
- Per-run metrics and pluggable metrics sinks
"""

from .logging import RunLogger, configure_logging
from .metrics import MetricsSink, RunMetrics
from .sinks import InMemoryMetricsSink, MetricsSummary

__all__ = [
    # Logging
    "RunLogger",
    "configure_logging",

    # Metrics
    "RunMetrics",
    "MetricsSink",
    "InMemoryMetricsSink",
    "MetricsSummary",
]
