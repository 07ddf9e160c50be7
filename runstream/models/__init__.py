"""Data models for run events, content parts and conversation messages."""

from .content import ContentPart, ContentType, ToolCallPart
from .events import (
    DeltaContent,
    GraphEvent,
    MessageDelta,
    ModelEnd,
    ReasoningDelta,
    RunStep,
    RunStepCompleted,
    RunStepDelta,
    StepType,
    StreamEvent,
    ToolCallChunk,
    ToolCallRef,
    ToolEnd,
    ToolStart,
)
from .messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    MessageRole,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UsageMetadata,
)

__all__ = [
    # Content
    "ContentPart",
    "ContentType",
    "ToolCallPart",

    # Events
    "GraphEvent",
    "StepType",
    "StreamEvent",
    "RunStep",
    "RunStepDelta",
    "RunStepCompleted",
    "MessageDelta",
    "ReasoningDelta",
    "DeltaContent",
    "ToolCallRef",
    "ToolCallChunk",
    "ToolStart",
    "ToolEnd",
    "ModelEnd",

    # Messages
    "MessageRole",
    "BaseMessage",
    "SystemMessage",
    "HumanMessage",
    "AIMessage",
    "ToolMessage",
    "ToolCall",
    "UsageMetadata",
]
