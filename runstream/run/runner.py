"""
Run controller.

A Run owns everything one graph execution needs: the graph, the handler
registry, the content aggregator and the usage list. Nothing is shared
between runs. The lifecycle is::

    CREATED -> STREAMING -> AWAITING_HANDLERS -> COMPLETED
                    \\                 \\
                     +-----------------+--> FAILED

``process_stream`` pumps graph events through the registry one at a time,
then waits at the handler barrier so that asynchronous handler work started
by any event finishes before the run reports completion.
"""

from __future__ import annotations

import asyncio
import copy
import time
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ..core.normalization import add_usage
from ..errors import HandlerError
from ..llm.registry import ChatModelRegistry
from ..models.content import ContentPart
from ..models.events import GraphEvent
from ..models.messages import BaseMessage, UsageMetadata
from ..observability.logging import RunLogger
from ..observability.metrics import MetricsSink, RunMetrics
from ..orchestration.graph import StandardGraph
from ..streaming.aggregator import ContentAggregator, create_content_aggregator
from ..streaming.handlers import ModelEndHandler, ToolEndHandler
from ..streaming.manager import HandlerRegistry
from .errors import RunConfigError, RunInputError, RunStateError
from .options import RunConfig, StreamConfig
from .result import RunResult


class RunState(str, Enum):
    CREATED = "created"
    STREAMING = "streaming"
    AWAITING_HANDLERS = "awaiting_handlers"
    COMPLETED = "completed"
    FAILED = "failed"


class Run:
    """One execution of a graph with its own aggregator and handlers.

    Use :meth:`create` to build a run; a run processes exactly one stream.
    """

    def __init__(
        self,
        config: RunConfig,
        graph: StandardGraph,
        handlers: HandlerRegistry,
        aggregator: ContentAggregator,
        collected_usage: List[UsageMetadata],
        metrics_sink: Optional[MetricsSink] = None,
    ):
        self.config = config
        self.run_id = config.run_id
        self._graph = graph
        self.handlers = handlers
        self.aggregator = aggregator
        self.collected_usage = collected_usage
        self.metrics_sink = metrics_sink
        self.logger = RunLogger(config.run_id)

        self._state = RunState.CREATED
        self._result: Optional[RunResult] = None
        self._run_messages: List[BaseMessage] = []

    @classmethod
    async def create(
        cls,
        config: Union[RunConfig, Mapping[str, Any]],
        model_registry: Optional[ChatModelRegistry] = None,
        metrics_sink: Optional[MetricsSink] = None,
    ) -> Run:
        """Validate ``config``, build the graph and wire the handlers.

        Built-in handlers are registered before the caller's: the content
        aggregator on every content kind, a usage collector on
        ``CHAT_MODEL_END``, and a ToolEndHandler on ``TOOL_END`` unless the
        caller supplies its own ``TOOL_END`` handler.

        Raises:
            RunConfigError: If the configuration is invalid
        """
        if not isinstance(config, RunConfig):
            try:
                config = RunConfig.model_validate(config)
            except ValidationError as e:
                raise RunConfigError(f"Invalid run configuration: {e}") from e

        graph_config = config.graph_config
        if graph_config.type != "standard":
            raise RunConfigError(f"Unsupported graph type: {graph_config.type!r}")

        graph = StandardGraph(
            run_id=config.run_id,
            llm_config=graph_config.llm_config,
            tools=graph_config.tools,
            instructions=graph_config.instructions,
            max_iterations=graph_config.max_iterations,
            model_registry=model_registry,
        )

        handlers = HandlerRegistry()
        aggregator = create_content_aggregator(strict=config.strict_events)
        for kind in ContentAggregator.HANDLED_KINDS:
            handlers.register(kind, aggregator)

        collected_usage: List[UsageMetadata] = []
        handlers.register(GraphEvent.CHAT_MODEL_END, ModelEndHandler(collected_usage))

        if GraphEvent.TOOL_END not in config.custom_handlers:
            handlers.register(GraphEvent.TOOL_END, ToolEndHandler())

        try:
            for kind, kind_handlers in config.custom_handlers.items():
                for handler in kind_handlers:
                    handlers.register(kind, handler)
        except TypeError as e:
            raise RunConfigError(str(e)) from e

        graph.bind_dispatcher(handlers)
        return cls(config, graph, handlers, aggregator, collected_usage, metrics_sink)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def graph(self) -> StandardGraph:
        return self._graph

    @property
    def result(self) -> Optional[RunResult]:
        """Frozen result; None until the run completes."""
        return self._result

    @property
    def content_parts(self) -> List[ContentPart]:
        """Live aggregated content (a snapshot after completion)."""
        if self._result is not None:
            return list(self._result.final_content_parts)
        return self.aggregator.snapshot()

    def get_run_messages(self) -> List[BaseMessage]:
        """Messages the run appended to the conversation (AI and tool turns)."""
        if self._state in (RunState.COMPLETED, RunState.FAILED):
            return list(self._run_messages)
        return self._graph.get_run_messages()

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def process_stream(
        self,
        inputs: Mapping[str, Any],
        config: Union[StreamConfig, Mapping[str, Any]],
    ) -> Optional[List[ContentPart]]:
        """Stream the graph and wait for every handler to settle.

        Args:
            inputs: Mapping with a non-empty ``messages`` list
            config: Stream configuration (``configurable.thread_id`` required)

        Returns:
            The aggregated content parts when ``return_content`` is set,
            otherwise None

        Raises:
            RunStateError: If this run already processed a stream
            RunInputError: If inputs or stream configuration are invalid
            HandlerError: If any handler failed
            ProviderError: If the chat model failed
        """
        if self._state != RunState.CREATED:
            raise RunStateError(f"Run {self.run_id} cannot process a stream in state {self._state.value}")

        messages = self._validate_inputs(inputs)
        stream_config = self._validate_stream_config(config)

        self._state = RunState.STREAMING
        start_time = time.time()
        with self.logger.track_run(thread_id=stream_config.thread_id):
            try:
                await self._pump(messages, stream_config)
                self._state = RunState.AWAITING_HANDLERS
                await self.handlers.wait_for_handlers()
            except asyncio.CancelledError:
                self._state = RunState.FAILED
                await self.handlers.cancel_pending()
                self._finish()
                raise
            except Exception as e:
                self._state = RunState.FAILED
                await self._record_metrics(self._build_metrics(start_time, stream_config, error=e))
                self._finish()
                raise

            self.aggregator.complete_steps()
            metrics = self._build_metrics(start_time, stream_config)
            self._result = RunResult(
                final_content_parts=tuple(copy.deepcopy(self.aggregator.content_parts)),
                final_messages=tuple(self._graph.get_run_messages()),
                usage=tuple(self.collected_usage),
                metrics=metrics,
            )
            self._state = RunState.COMPLETED
            await self._record_metrics(metrics)
            self._finish()

        if self.config.return_content:
            return list(self._result.final_content_parts)
        return None

    async def _pump(self, messages: List[BaseMessage], stream_config: StreamConfig) -> None:
        try:
            async for event, metadata in self._graph.stream_events(
                {"messages": messages}, stream_config.model_dump()
            ):
                self.handlers.dispatch(event, metadata, self._graph)
        except Exception:
            # Handler work started before the failure still runs to completion
            await self.handlers.wait_for_handlers(raise_errors=False)
            raise

    def _validate_inputs(self, inputs: Mapping[str, Any]) -> List[BaseMessage]:
        if not isinstance(inputs, Mapping):
            raise RunInputError(f"inputs must be a mapping with 'messages', got {type(inputs).__name__}")
        messages = inputs.get("messages")
        if not messages:
            raise RunInputError("inputs.messages must contain at least one message")
        for message in messages:
            if not isinstance(message, BaseMessage):
                raise RunInputError(f"inputs.messages entries must be messages, got {type(message).__name__}")
        return list(messages)

    def _validate_stream_config(self, config: Union[StreamConfig, Mapping[str, Any]]) -> StreamConfig:
        if isinstance(config, StreamConfig):
            return config
        if config is None:
            raise RunInputError("Stream configuration is required")
        try:
            return StreamConfig.model_validate(config)
        except ValidationError as e:
            raise RunInputError(f"Invalid stream configuration: {e}") from e

    def _finish(self) -> None:
        self._run_messages = self._graph.get_run_messages()
        if not self.config.skip_cleanup:
            self._graph.reset()

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def _build_metrics(
        self,
        start_time: float,
        stream_config: StreamConfig,
        error: Optional[BaseException] = None,
    ) -> RunMetrics:
        llm_config = self._graph.llm_config
        totals = UsageMetadata()
        for usage in self.collected_usage:
            totals = add_usage(totals, usage)
        handler_errors = len(self.handlers.errors)
        if isinstance(error, HandlerError):
            handler_errors = len(error.errors)
        return RunMetrics(
            run_id=self.run_id,
            thread_id=stream_config.thread_id,
            provider=llm_config.provider,
            model=llm_config.model,
            latency_ms=int((time.time() - start_time) * 1000),
            input_tokens=totals.input_tokens,
            output_tokens=totals.output_tokens,
            model_invocations=self._graph.model_invocations,
            events_by_kind={kind.value: count for kind, count in self.handlers.dispatched.items()},
            handler_errors=handler_errors,
            error_class=type(error).__name__ if error is not None else None,
            tools_used=list(self._graph.tools_used),
        )

    async def _record_metrics(self, metrics: RunMetrics) -> None:
        if self.metrics_sink is None:
            return
        try:
            await self.metrics_sink.record(metrics)
        except Exception as e:
            self.logger.error("Error sending metrics to sink", error=e, sink=type(self.metrics_sink).__name__)
