"""Configuration options for runs."""

import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import EventContractError
from ..llm.base import LLMConfig
from ..models.events import GraphEvent, coerce_kind
from ..orchestration.tool_registry import Tool


class GraphConfig(BaseModel):
    """Which graph to build and how to configure it."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["standard"] = Field(default="standard", description="Graph implementation")
    llm_config: LLMConfig = Field(..., description="Model selection and streaming behavior")
    tools: List[Tool] = Field(default_factory=list, description="Tools the model may call")
    instructions: Optional[str] = Field(default=None, description="System prompt for every model call")
    max_iterations: int = Field(default=10, ge=1, le=100, description="Upper bound on model calls per run")


class RunConfig(BaseModel):
    """Options for a single run."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    run_id: str = Field(default_factory=lambda: f"run_{uuid.uuid4().hex[:12]}", description="Run identifier")
    graph_config: GraphConfig = Field(..., description="Graph to build for this run")
    return_content: bool = Field(
        default=False,
        description="Return the aggregated content parts from process_stream()"
    )
    custom_handlers: Dict[GraphEvent, List[Any]] = Field(
        default_factory=dict,
        description="Extra handlers per event kind, invoked after the built-in ones"
    )
    skip_cleanup: bool = Field(default=False, description="Keep graph buffers after the run")
    strict_events: Optional[bool] = Field(
        default=None,
        description="Override the strict_events setting for this run's aggregator"
    )

    @field_validator("run_id")
    def validate_run_id(cls, v):
        if not v or not v.strip():
            raise ValueError("run_id must be a non-empty string")
        return v

    @field_validator("custom_handlers", mode="before")
    def validate_custom_handlers(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("custom_handlers must map event kinds to handlers")

        handlers: Dict[GraphEvent, List[Any]] = {}
        for kind, value in v.items():
            try:
                kind = coerce_kind(kind)
            except EventContractError as e:
                raise ValueError(str(e)) from e
            items = list(value) if isinstance(value, (list, tuple)) else [value]
            for handler in items:
                if not (hasattr(handler, "handle") or callable(handler)):
                    raise ValueError(f"Handler for {kind.value} must expose handle() or be callable")
            handlers.setdefault(kind, []).extend(items)
        return handlers


class StreamConfig(BaseModel):
    """Per-invocation stream options."""

    configurable: Dict[str, Any] = Field(..., description="Run-scoped values; must include thread_id")
    stream_mode: Literal["values", "updates", "messages"] = Field(default="values")
    version: Literal["v1", "v2"] = Field(default="v2")

    @field_validator("configurable")
    def validate_configurable(cls, v):
        thread_id = v.get("thread_id")
        if not isinstance(thread_id, str) or not thread_id.strip():
            raise ValueError("configurable.thread_id must be a non-empty string")
        return v

    @property
    def thread_id(self) -> str:
        return self.configurable["thread_id"]
