"""Streaming layer: content aggregation and event handler dispatch.

This layer handles:
- Folding run events into ordered content parts
- Per-kind handler registration and dispatch
- Tracking asynchronous handler work until the run completes
- Built-in usage, metadata and tool-completion handlers
"""

from .aggregator import ContentAggregator, StepState, StepStatus, create_content_aggregator
from .handlers import MetadataAggregator, ModelEndHandler, ToolEndHandler, create_metadata_aggregator
from .manager import EventHandler, FunctionHandler, HandlerRegistry, as_handler

__all__ = [
    "ContentAggregator",
    "StepState",
    "StepStatus",
    "create_content_aggregator",
    "EventHandler",
    "FunctionHandler",
    "HandlerRegistry",
    "as_handler",
    "ModelEndHandler",
    "ToolEndHandler",
    "MetadataAggregator",
    "create_metadata_aggregator",
]
