"""
Reference orchestration graph.

StandardGraph runs a single-agent loop: call the chat model, and when it
asks for tools run them and call the model again, until it answers without
tool calls or ``max_iterations`` model calls have been made. Every step of
the loop is reported as a StreamEvent.

Each model call delivers its content through exactly one path: token deltas
when the model streams, or one whole-text delta per content type when
``disable_streaming`` is set. Consumers can therefore append every delta
they receive without deduplicating.
"""

from __future__ import annotations

import json
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Set, Tuple, Union

from ..llm.base import ChatModel, LLMConfig, ProviderError, merge_chunks
from ..llm.fake import FakeChatModel, FakeResponse
from ..llm.registry import ChatModelRegistry, default_registry
from ..models.content import ContentType
from ..models.events import (
    DeltaContent,
    GraphEvent,
    MessageDelta,
    ModelEnd,
    ReasoningDelta,
    RunStep,
    RunStepCompleted,
    StepType,
    StreamEvent,
    ToolCallRef,
    ToolEnd,
    ToolStart,
)
from ..models.messages import AIMessage, BaseMessage, SystemMessage, ToolCall, ToolMessage
from ..observability.logging import RunLogger
from ..streaming.manager import HandlerRegistry
from .errors import MaxIterationsExceeded, OrchestratorError, ToolExecutionError, ToolNotFoundError
from .tool_registry import Tool, ToolRegistry

EventWithMetadata = Tuple[StreamEvent, Dict[str, Any]]


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class StandardGraph:
    """Single-agent model/tool loop that emits run events."""

    def __init__(
        self,
        run_id: str,
        llm_config: LLMConfig,
        tools: Optional[Sequence[Tool]] = None,
        instructions: Optional[str] = None,
        max_iterations: int = 10,
        model_registry: Optional[ChatModelRegistry] = None,
        handle_tool_errors: bool = True,
    ):
        """Initialize the graph.

        Args:
            run_id: Run every emitted event is tagged with
            llm_config: Model selection and streaming behavior
            tools: Tools the model may call
            instructions: System prompt prepended to every model call
            max_iterations: Upper bound on model calls per stream
            model_registry: Source of chat models (defaults to a fresh registry)
            handle_tool_errors: Report tool failures to the model as tool
                output instead of raising
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.run_id = run_id
        self.llm_config = llm_config
        self.tool_registry = ToolRegistry(tools)
        self.instructions = instructions
        self.max_iterations = max_iterations
        self.model_registry = model_registry or default_registry()
        self.handle_tool_errors = handle_tool_errors
        self.logger = RunLogger(run_id, component="graph")

        self._dispatcher: Optional[HandlerRegistry] = None
        self._model: Optional[ChatModel] = None
        self._reset_buffers()

    def _reset_buffers(self) -> None:
        self.messages: List[BaseMessage] = []
        self.steps: Dict[str, RunStep] = {}
        self.model_invocations = 0
        self.tools_used: List[str] = []
        self._completed_tool_calls: Set[str] = set()

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def bind_dispatcher(self, dispatcher: HandlerRegistry) -> None:
        """Attach the registry that receives events the graph emits out of band."""
        self._dispatcher = dispatcher

    def override_test_model(self, responses: Sequence[Union[str, FakeResponse]]) -> FakeChatModel:
        """Replace the configured model with a scripted one."""
        model = FakeChatModel(
            responses,
            provider=self.llm_config.provider or "fake",
            model=self.llm_config.model or "fake-model",
        )
        self._model = model
        return model

    def get_model(self) -> ChatModel:
        if self._model is None:
            self._model = self.model_registry.create(self.llm_config)
        return self._model

    def get_run_messages(self) -> List[BaseMessage]:
        """Messages produced during the current stream (AI and tool turns)."""
        return list(self.messages)

    def reset(self) -> None:
        """Drop per-run buffers; the model and dispatcher stay bound."""
        self._reset_buffers()

    # ------------------------------------------------------------------
    # Event production
    # ------------------------------------------------------------------

    def _event(self, kind: GraphEvent, data: Any) -> StreamEvent:
        return StreamEvent(kind=kind, data=data, run_id=self.run_id)

    def _new_step(self, step_type: StepType, tool_calls: Sequence[ToolCallRef] = ()) -> RunStep:
        step = RunStep(
            id=_new_id("step"),
            run_id=self.run_id,
            index=len(self.steps),
            type=step_type,
            message_id=_new_id("msg") if step_type == StepType.MESSAGE_CREATION else None,
            tool_calls=tuple(tool_calls),
        )
        self.steps[step.id] = step
        return step

    def _build_metadata(self, config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        config = config or {}
        metadata: Dict[str, Any] = dict(config.get("configurable") or {})
        metadata["run_id"] = self.run_id
        metadata["provider"] = self.llm_config.provider
        metadata["model"] = self.llm_config.model
        return metadata

    async def stream_events(
        self,
        inputs: Dict[str, Any],
        config: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[EventWithMetadata]:
        """Run the loop, yielding ``(event, metadata)`` pairs in order.

        Args:
            inputs: Mapping with a ``messages`` list of conversation messages
            config: Stream configuration; ``configurable`` entries are copied
                into every event's metadata

        Raises:
            ProviderError: If the chat model fails
            MaxIterationsExceeded: If the model still requests tools after
                ``max_iterations`` calls
        """
        metadata = self._build_metadata(config)
        base: List[BaseMessage] = []
        if self.instructions:
            base.append(SystemMessage(content=self.instructions))
        base.extend(inputs.get("messages") or [])

        model = self.get_model()
        tool_schemas = self.tool_registry.list_tools() or None

        for iteration in range(self.max_iterations):
            step = self._new_step(StepType.MESSAGE_CREATION)
            yield self._event(GraphEvent.ON_RUN_STEP, step), metadata

            conversation = base + self.messages
            ai_message: Optional[AIMessage] = None
            if self.llm_config.streams_tokens:
                chunks = []
                async for chunk in self._guarded_stream(model, conversation, tool_schemas):
                    chunks.append(chunk)
                    if chunk.reasoning:
                        yield self._reasoning_delta(step.id, chunk.reasoning), metadata
                    if chunk.text:
                        yield self._message_delta(step.id, chunk.text), metadata
                ai_message = merge_chunks(chunks, provider=model.provider)
            else:
                ai_message = await self._guarded_invoke(model, conversation, tool_schemas)
                if ai_message.reasoning:
                    yield self._reasoning_delta(step.id, ai_message.reasoning), metadata
                if ai_message.content:
                    yield self._message_delta(step.id, ai_message.content), metadata

            self.model_invocations += 1
            self.messages.append(ai_message)
            yield self._event(
                GraphEvent.CHAT_MODEL_END,
                ModelEnd(
                    output=ai_message,
                    usage=ai_message.usage_metadata,
                    response_metadata=dict(ai_message.response_metadata),
                    provider=model.provider,
                    model=model.model,
                ),
            ), metadata

            if ai_message.usage_metadata is not None:
                self.logger.log_usage(ai_message.usage_metadata.model_dump(), model=model.model)

            if not ai_message.tool_calls:
                self.logger.debug("Final answer", iteration=iteration, step_id=step.id)
                return

            async for item in self._run_tool_step(ai_message.tool_calls, metadata):
                yield item

        raise MaxIterationsExceeded(self.max_iterations)

    def _message_delta(self, step_id: str, text: str) -> StreamEvent:
        return self._event(
            GraphEvent.ON_MESSAGE_DELTA,
            MessageDelta(id=step_id, content=(DeltaContent(type=ContentType.TEXT, text=text),)),
        )

    def _reasoning_delta(self, step_id: str, text: str) -> StreamEvent:
        return self._event(
            GraphEvent.ON_REASONING_DELTA,
            ReasoningDelta(id=step_id, content=(DeltaContent(type=ContentType.REASONING, text=text),)),
        )

    async def _guarded_stream(self, model: ChatModel, conversation, tools):
        try:
            async for chunk in model.astream(conversation, tools):
                yield chunk
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(model.provider, e) from e

    async def _guarded_invoke(self, model: ChatModel, conversation, tools) -> AIMessage:
        try:
            result = await model.ainvoke(conversation, tools)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(model.provider, e) from e
        return result.message

    async def _run_tool_step(
        self,
        tool_calls: Sequence[ToolCall],
        metadata: Dict[str, Any],
    ) -> AsyncIterator[EventWithMetadata]:
        refs = [ToolCallRef(id=call.id, name=call.name, args=json.dumps(call.args)) for call in tool_calls]
        step = self._new_step(StepType.TOOL_CALLS, refs)
        yield self._event(GraphEvent.ON_RUN_STEP, step), metadata

        for call, ref in zip(tool_calls, refs):
            yield self._event(
                GraphEvent.TOOL_START,
                ToolStart(step_id=step.id, tool_call_id=call.id, name=call.name, args=ref.args),
            ), metadata

            output = await self._invoke_tool(call)
            self.tools_used.append(call.name)
            self.messages.append(ToolMessage(content=output, tool_call_id=call.id, name=call.name))
            yield self._event(
                GraphEvent.TOOL_END,
                ToolEnd(step_id=step.id, tool_call_id=call.id, name=call.name, output=output, args=ref.args),
            ), metadata

    async def _invoke_tool(self, call: ToolCall) -> str:
        tool = self.tool_registry.get_tool(call.name)
        try:
            if tool is None:
                raise ToolNotFoundError(call.name)
            try:
                return await tool.invoke(call.args)
            except Exception as e:
                raise ToolExecutionError(call.name, e, metadata={"tool_call_id": call.id}) from e
        except OrchestratorError as e:
            if not self.handle_tool_errors:
                raise
            self.logger.warning(f"Tool call failed: {e}", tool=call.name, tool_call_id=call.id)
            return f"Error: {e}"

    # ------------------------------------------------------------------
    # Completion callbacks
    # ------------------------------------------------------------------

    def handle_tool_call_completed(
        self,
        data: ToolEnd,
        metadata: Optional[Dict[str, Any]] = None,
        omit_output: bool = False,
    ) -> None:
        """Emit ``ON_RUN_STEP_COMPLETED`` for a finished tool call.

        Called by ToolEndHandler. Each tool call completes at most once.

        Raises:
            OrchestratorError: If no dispatcher is bound
        """
        if self._dispatcher is None:
            raise OrchestratorError("No dispatcher bound to graph; call bind_dispatcher() first")

        if data.tool_call_id in self._completed_tool_calls:
            self.logger.debug("Tool call already completed", tool_call_id=data.tool_call_id)
            return
        self._completed_tool_calls.add(data.tool_call_id)

        step = self.steps.get(data.step_id)
        result = RunStepCompleted(
            id=data.step_id,
            tool_call=ToolCallRef(id=data.tool_call_id, name=data.name, args=data.args),
            index=step.index if step is not None else 0,
            output=None if omit_output else data.output,
        )
        self._dispatcher.dispatch(self._event(GraphEvent.ON_RUN_STEP_COMPLETED, result), metadata, self)
