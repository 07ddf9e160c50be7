"""
Chat model interface.

This module defines the abstract chat model the orchestration graph drives,
the chunk and result shapes it produces, and the errors raised around model
resolution. Provider wire protocols live outside runstream; a provider is
plugged in by registering a ChatModel factory with a ChatModelRegistry.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..errors import RunStreamError
from ..models.events import ToolCallChunk
from ..models.messages import AIMessage, BaseMessage, ToolCall, UsageMetadata


class Providers(str, Enum):
    """Well-known provider names."""
    OPENAI = "openai"
    AZURE = "azure"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    BEDROCK = "bedrock"
    FAKE = "fake"


class LLMConfig(BaseModel):
    """Model selection and streaming behavior for a graph.

    Unknown keys are kept (``model_extra``) and passed through to the model
    factory untouched.
    """
    model_config = ConfigDict(extra="allow")

    provider: Optional[str] = Field(None, description="Provider name; falls back to the default_provider setting")
    model: Optional[str] = Field(None, description="Model identifier")
    streaming: bool = Field(default=True, description="Stream token deltas from the model")
    disable_streaming: bool = Field(
        default=False,
        description="Deliver each response as one whole-text delta instead of token deltas"
    )
    stream_usage: bool = Field(default=True, description="Request usage figures with streamed responses")

    @property
    def streams_tokens(self) -> bool:
        return self.streaming and not self.disable_streaming


@dataclass
class ChatChunk:
    """One increment of a streamed model response."""
    text: str = ""
    reasoning: str = ""
    tool_call_chunks: List[ToolCallChunk] = field(default_factory=list)
    usage: Optional[UsageMetadata] = None
    response_metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatResult:
    """A complete model response."""
    message: AIMessage

    @property
    def usage(self) -> Optional[UsageMetadata]:
        return self.message.usage_metadata


class ProviderError(RunStreamError):
    """Upstream model failure, wrapped but not interpreted.

    Attributes:
        provider: Provider name
        original_error: The exception raised by the provider, if any
    """

    def __init__(self, provider: str, original_error: Optional[BaseException] = None, message: Optional[str] = None):
        self.provider = provider
        self.original_error = original_error
        if message is None:
            message = f"{provider} model error: {original_error}" if original_error else f"{provider} model error"
        super().__init__(message)


class ChatModelNotFoundError(RunStreamError):
    """No chat model factory is registered for the requested provider."""

    def __init__(self, provider: Optional[str], available: Iterable[str] = ()):
        self.provider = provider
        self.available = sorted(available)
        super().__init__(
            f"No chat model registered for provider {provider!r}; "
            f"available: {', '.join(self.available) or 'none'}"
        )


class ChatModel(ABC):
    """
    Abstract chat model.

    Implementations stream ``ChatChunk`` objects; the final chunk should carry
    usage and response metadata. ``ainvoke`` folds the stream into one
    message and may be overridden when a provider offers a cheaper
    non-streaming call.
    """

    provider: str = "unknown"
    model: Optional[str] = None

    @abstractmethod
    def astream(
        self,
        messages: Sequence[BaseMessage],
        tools: Optional[Sequence[Any]] = None,
    ) -> AsyncIterator[ChatChunk]:
        """Stream a response to ``messages``.

        Raises:
            ProviderError: For upstream failures
        """

    async def ainvoke(
        self,
        messages: Sequence[BaseMessage],
        tools: Optional[Sequence[Any]] = None,
    ) -> ChatResult:
        chunks = [chunk async for chunk in self.astream(messages, tools)]
        return ChatResult(message=merge_chunks(chunks, provider=self.provider))


def merge_chunks(chunks: Sequence[ChatChunk], provider: str = "unknown") -> AIMessage:
    """Fold streamed chunks into one AIMessage.

    Tool call chunks are grouped by ``index``; their argument fragments are
    concatenated and parsed as JSON.

    Raises:
        ProviderError: If assembled tool arguments are not valid JSON
    """
    text_parts: List[str] = []
    reasoning_parts: List[str] = []
    calls: Dict[int, Dict[str, Any]] = {}
    usage: Optional[UsageMetadata] = None
    response_metadata: Dict[str, Any] = {}

    for chunk in chunks:
        text_parts.append(chunk.text)
        reasoning_parts.append(chunk.reasoning)
        for tc in chunk.tool_call_chunks:
            entry = calls.setdefault(tc.index, {"id": None, "name": "", "args": ""})
            if tc.id:
                entry["id"] = tc.id
            if tc.name:
                entry["name"] = tc.name
            entry["args"] += tc.args
        if chunk.usage is not None:
            usage = chunk.usage
        response_metadata.update(chunk.response_metadata)

    tool_calls = []
    for index in sorted(calls):
        entry = calls[index]
        try:
            args = json.loads(entry["args"]) if entry["args"] else {}
        except json.JSONDecodeError as e:
            raise ProviderError(provider, e, f"Invalid arguments for tool call {entry['name']!r}: {e}") from e
        tool_calls.append(ToolCall(id=entry["id"] or f"call_{index}", name=entry["name"], args=args))

    return AIMessage(
        content="".join(text_parts),
        reasoning="".join(reasoning_parts),
        tool_calls=tool_calls,
        usage_metadata=usage,
        response_metadata=response_metadata,
    )
