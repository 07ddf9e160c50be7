from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from enum import Enum


class MessageRole(str, Enum):
    """Conversation message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class UsageMetadata(BaseModel):
    """Token usage reported for a single model invocation."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    input_token_details: Dict[str, Any] = Field(default_factory=dict)


class ToolCall(BaseModel):
    """Tool call requested by the model."""

    id: str
    name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class BaseMessage(BaseModel):
    """Base class for conversation messages."""

    role: MessageRole
    content: str = ""
    name: Optional[str] = None


class SystemMessage(BaseMessage):
    role: MessageRole = MessageRole.SYSTEM


class HumanMessage(BaseMessage):
    role: MessageRole = MessageRole.USER

    def __init__(self, content: str = "", **kwargs):
        super().__init__(content=content, **kwargs)


class AIMessage(BaseMessage):
    """Assistant turn, with optional tool calls and usage."""

    role: MessageRole = MessageRole.ASSISTANT
    reasoning: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    usage_metadata: Optional[UsageMetadata] = None
    response_metadata: Dict[str, Any] = Field(default_factory=dict)


class ToolMessage(BaseMessage):
    role: MessageRole = MessageRole.TOOL
    tool_call_id: str
