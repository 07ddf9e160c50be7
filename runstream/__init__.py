"""
runstream - Event aggregation and handler dispatch for streamed LLM runs.

This package drives a multi-step model run (model calls and tool calls) and
reassembles the stream of events it emits into one ordered content result:
- Typed run events and content parts
- A content aggregator that appends every delta exactly where it belongs
- Per-kind event handlers, sync or async, joined before the run completes
- Usage and provider metadata collection per model invocation
- A reference single-agent graph with tools and a scripted test model
"""

__version__ = "0.1.0"

from .config import Settings, get_settings
from .errors import EventContractError, FinalizedContentError, HandlerError, RunStreamError, UnknownStepError
from .llm import ChatModel, ChatModelRegistry, FakeChatModel, FakeResponse, LLMConfig, ProviderError, Providers
from .models import (
    AIMessage,
    ContentPart,
    ContentType,
    GraphEvent,
    HumanMessage,
    StreamEvent,
    SystemMessage,
    ToolMessage,
    UsageMetadata,
)
from .orchestration import Calculator, StandardGraph, Tool
from .run import GraphConfig, Run, RunConfig, RunResult, RunState, StreamConfig
from .run import RunConfigError, RunInputError, RunStateError
from .streaming import (
    ContentAggregator,
    HandlerRegistry,
    ModelEndHandler,
    ToolEndHandler,
    create_content_aggregator,
    create_metadata_aggregator,
)

__all__ = [
    # Run controller
    "Run",
    "RunState",
    "RunResult",
    "RunConfig",
    "GraphConfig",
    "StreamConfig",

    # Streaming
    "ContentAggregator",
    "create_content_aggregator",
    "HandlerRegistry",
    "ModelEndHandler",
    "ToolEndHandler",
    "create_metadata_aggregator",

    # Models
    "GraphEvent",
    "StreamEvent",
    "ContentPart",
    "ContentType",
    "UsageMetadata",
    "SystemMessage",
    "HumanMessage",
    "AIMessage",
    "ToolMessage",

    # LLM
    "ChatModel",
    "ChatModelRegistry",
    "FakeChatModel",
    "FakeResponse",
    "LLMConfig",
    "Providers",

    # Orchestration
    "StandardGraph",
    "Tool",
    "Calculator",

    # Config
    "Settings",
    "get_settings",

    # Errors
    "RunStreamError",
    "EventContractError",
    "UnknownStepError",
    "FinalizedContentError",
    "HandlerError",
    "ProviderError",
    "RunConfigError",
    "RunInputError",
    "RunStateError",
]
