"""Built-in event handlers: usage and metadata collectors, tool completion."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging

from ..models.events import GraphEvent, ModelEnd, StreamEvent, ToolEnd
from ..models.messages import AIMessage, UsageMetadata

logger = logging.getLogger(__name__)


class ModelEndHandler:
    """Collects one usage record per model invocation.

    Bound to ``CHAT_MODEL_END``. The collected list is owned by the caller and
    is appended to in event order.
    """

    def __init__(self, collected_usage: Optional[List[UsageMetadata]] = None):
        self.collected_usage = collected_usage if collected_usage is not None else []

    def handle(self, event: StreamEvent, metadata: Optional[Dict[str, Any]] = None, graph: Any = None) -> None:
        if event.kind != GraphEvent.CHAT_MODEL_END:
            logger.warning(f"ModelEndHandler received {event.kind.value}; ignoring")
            return

        data: ModelEnd = event.data
        usage = data.usage or data.output.usage_metadata
        if usage is None:
            logger.debug(f"No usage reported by {data.provider or 'model'}")
            return
        self.collected_usage.append(usage)


class ToolEndHandler:
    """Turns a tool-end event into a run-step completion.

    The graph reference passed at dispatch is asked to emit
    ``ON_RUN_STEP_COMPLETED`` for the finished tool call. ``callback``, when
    given, is invoked with the tool-end payload and the run metadata first.
    """

    def __init__(
        self,
        callback: Optional[Callable[[ToolEnd, Optional[Dict[str, Any]]], None]] = None,
        omit_output: bool = False,
    ):
        self.callback = callback
        self.omit_output = omit_output

    def handle(self, event: StreamEvent, metadata: Optional[Dict[str, Any]] = None, graph: Any = None) -> None:
        if graph is None:
            raise ValueError("ToolEndHandler requires a graph reference")

        data: ToolEnd = event.data
        if self.callback is not None:
            self.callback(data, metadata)
        graph.handle_tool_call_completed(data, metadata, omit_output=self.omit_output)


@dataclass
class MetadataAggregator:
    """Collects provider metadata from finished model invocations.

    ``handle_llm_end`` can be passed directly as a model callback; the
    aggregator can also be registered as a ``CHAT_MODEL_END`` handler.
    """
    collected: List[Dict[str, Any]] = field(default_factory=list)

    def handle_llm_end(self, output: AIMessage, provider: Optional[str] = None, model: Optional[str] = None) -> None:
        entry: Dict[str, Any] = dict(output.response_metadata)
        if output.usage_metadata is not None:
            entry["usage"] = output.usage_metadata.model_dump()
        if provider:
            entry.setdefault("provider", provider)
        if model:
            entry.setdefault("model", model)
        self.collected.append(entry)

    def handle(self, event: StreamEvent, metadata: Optional[Dict[str, Any]] = None, graph: Any = None) -> None:
        data: ModelEnd = event.data
        self.handle_llm_end(data.output, provider=data.provider, model=data.model)


def create_metadata_aggregator() -> MetadataAggregator:
    return MetadataAggregator()
