"""Event models for graph run streams.

This module defines the event kinds emitted by an orchestration graph while
a run executes, and the payload shape that belongs to each kind. Events are
immutable once produced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Type
import time

from .content import ContentType
from .messages import AIMessage, UsageMetadata
from ..errors import EventContractError


class GraphEvent(str, Enum):
    """Kinds of events a graph run emits."""
    ON_RUN_STEP = "on_run_step"
    ON_RUN_STEP_DELTA = "on_run_step_delta"
    ON_RUN_STEP_COMPLETED = "on_run_step_completed"
    ON_MESSAGE_DELTA = "on_message_delta"
    ON_REASONING_DELTA = "on_reasoning_delta"
    TOOL_START = "on_tool_start"
    TOOL_END = "on_tool_end"
    CHAT_MODEL_END = "on_chat_model_end"


class StepType(str, Enum):
    """What a run step does: produce a message or call tools."""
    MESSAGE_CREATION = "message_creation"
    TOOL_CALLS = "tool_calls"


@dataclass(frozen=True)
class ToolCallRef:
    """Identity of a tool call inside a run step."""
    id: str
    name: str = ""
    args: str = ""


@dataclass(frozen=True)
class ToolCallChunk:
    """Fragment of a tool call's arguments."""
    index: int = 0
    id: Optional[str] = None
    name: Optional[str] = None
    args: str = ""


@dataclass(frozen=True)
class DeltaContent:
    """A text or reasoning fragment carried by a delta event."""
    type: ContentType
    text: str = ""


@dataclass(frozen=True)
class RunStep:
    """A model call or tool call within a run."""
    id: str
    run_id: Optional[str] = None
    index: int = 0
    type: StepType = StepType.MESSAGE_CREATION
    message_id: Optional[str] = None
    tool_calls: Tuple[ToolCallRef, ...] = ()


@dataclass(frozen=True)
class RunStepDelta:
    """Incremental update to a run step (tool argument chunks, content)."""
    id: str
    tool_calls: Tuple[ToolCallChunk, ...] = ()
    content: Tuple[DeltaContent, ...] = ()


@dataclass(frozen=True)
class MessageDelta:
    """Token-level (or whole-response) message content for a step."""
    id: str
    content: Tuple[DeltaContent, ...] = ()


@dataclass(frozen=True)
class ReasoningDelta:
    """Reasoning content for a step."""
    id: str
    content: Tuple[DeltaContent, ...] = ()


@dataclass(frozen=True)
class ToolStart:
    step_id: str
    tool_call_id: str
    name: str
    args: str = ""


@dataclass(frozen=True)
class ToolEnd:
    """A tool finished; carries its output."""
    step_id: str
    tool_call_id: str
    name: str
    output: str
    args: str = ""


@dataclass(frozen=True)
class RunStepCompleted:
    """A tool run step completed with its final result."""
    id: str
    tool_call: ToolCallRef
    index: int = 0
    output: Optional[str] = None


@dataclass(frozen=True)
class ModelEnd:
    """A model invocation finished."""
    output: AIMessage
    usage: Optional[UsageMetadata] = None
    response_metadata: Dict[str, Any] = field(default_factory=dict)
    provider: Optional[str] = None
    model: Optional[str] = None


PAYLOAD_TYPES: Dict[GraphEvent, Type] = {
    GraphEvent.ON_RUN_STEP: RunStep,
    GraphEvent.ON_RUN_STEP_DELTA: RunStepDelta,
    GraphEvent.ON_RUN_STEP_COMPLETED: RunStepCompleted,
    GraphEvent.ON_MESSAGE_DELTA: MessageDelta,
    GraphEvent.ON_REASONING_DELTA: ReasoningDelta,
    GraphEvent.TOOL_START: ToolStart,
    GraphEvent.TOOL_END: ToolEnd,
    GraphEvent.CHAT_MODEL_END: ModelEnd,
}


def coerce_kind(kind: Any) -> GraphEvent:
    """Resolve an event kind, raising EventContractError for foreign kinds."""
    if isinstance(kind, GraphEvent):
        return kind
    try:
        return GraphEvent(kind)
    except ValueError:
        raise EventContractError(f"Unrecognized event kind: {kind!r}") from None


@dataclass(frozen=True)
class StreamEvent:
    """A discrete notification of run progress."""
    kind: GraphEvent
    data: Any
    run_id: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        kind = coerce_kind(self.kind)
        object.__setattr__(self, "kind", kind)
        expected = PAYLOAD_TYPES[kind]
        if not isinstance(self.data, expected):
            raise EventContractError(
                f"{kind.value} expects {expected.__name__} payload, "
                f"got {type(self.data).__name__}"
            )
