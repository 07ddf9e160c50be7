"""
Content aggregation for graph run streams.

The aggregator folds run events, one at a time and in arrival order, into a
single ordered list of content parts. It is a pure accumulator: deltas are
appended to the part their step owns and are never replaced or deduplicated,
so a response delivered as one whole-text delta and a response delivered as
many token deltas produce the same result.

Failure policy: an event that names a step the aggregator has never seen, or
that tries to extend a step that already completed, is a contract violation
by the producer. In strict mode the aggregator raises; otherwise it logs a
warning and skips the event. The default is ``Settings.strict_events``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
import logging

from ..config.settings import get_settings
from ..errors import FinalizedContentError, UnknownStepError
from ..models.content import ContentPart, ContentType, ToolCallPart
from ..models.events import (
    DeltaContent,
    GraphEvent,
    MessageDelta,
    ReasoningDelta,
    RunStep,
    RunStepCompleted,
    RunStepDelta,
    StepType,
    StreamEvent,
    ToolCallChunk,
    ToolEnd,
)

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass
class StepState:
    """Aggregator-owned view of a run step."""
    id: str
    type: StepType
    index: int = 0
    status: StepStatus = StepStatus.CREATED
    buffer: List[Any] = field(default_factory=list)
    part_indices: Dict[ContentType, int] = field(default_factory=dict)
    tool_part_indices: Dict[str, int] = field(default_factory=dict)
    tool_order: List[str] = field(default_factory=list)


class ContentAggregator:
    """Folds stream events into an ordered content-part sequence.

    The aggregator is the only writer of ``content_parts`` and of the step
    records in ``steps``. It can be called directly with an event, or
    registered as a handler through :meth:`handle`.
    """

    HANDLED_KINDS = (
        GraphEvent.ON_RUN_STEP,
        GraphEvent.ON_RUN_STEP_DELTA,
        GraphEvent.ON_RUN_STEP_COMPLETED,
        GraphEvent.ON_MESSAGE_DELTA,
        GraphEvent.ON_REASONING_DELTA,
        GraphEvent.TOOL_END,
    )

    def __init__(self, strict: Optional[bool] = None):
        """Initialize the aggregator.

        Args:
            strict: Raise on contract violations instead of skipping them.
                Defaults to the ``strict_events`` setting.
        """
        self.strict = get_settings().strict_events if strict is None else strict
        self.content_parts: List[ContentPart] = []
        self.steps: Dict[str, StepState] = {}
        self.events_seen = 0

    def __call__(self, event: StreamEvent) -> None:
        self.aggregate(event)

    def handle(self, event: StreamEvent, metadata: Optional[Dict[str, Any]] = None, graph: Any = None) -> None:
        """EventHandler entry point."""
        self.aggregate(event)

    def aggregate(self, event: StreamEvent) -> None:
        """Apply one event to the content sequence."""
        self.events_seen += 1
        kind = event.kind
        data = event.data

        if kind == GraphEvent.ON_RUN_STEP:
            self._on_run_step(data)
        elif kind == GraphEvent.ON_MESSAGE_DELTA:
            self._on_content_delta(kind, data)
        elif kind == GraphEvent.ON_REASONING_DELTA:
            self._on_content_delta(kind, data)
        elif kind == GraphEvent.ON_RUN_STEP_DELTA:
            self._on_run_step_delta(data)
        elif kind == GraphEvent.TOOL_END:
            self._on_tool_end(data)
        elif kind == GraphEvent.ON_RUN_STEP_COMPLETED:
            self._on_run_step_completed(data)
        # CHAT_MODEL_END and TOOL_START carry no content

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_run_step(self, step: RunStep) -> None:
        if step.id in self.steps:
            logger.debug(f"Run step {step.id} announced twice; keeping the first")
            return

        state = StepState(id=step.id, type=step.type, index=step.index)
        self.steps[step.id] = state

        if step.type == StepType.TOOL_CALLS:
            for ref in step.tool_calls:
                self._add_tool_part(state, ref.id, ref.name, ref.args)

    def _on_content_delta(self, kind: GraphEvent, delta: Any) -> None:
        state = self._resolve_step(delta.id, kind)
        if state is None:
            return
        state.status = StepStatus.IN_PROGRESS
        state.buffer.append(delta)
        self._append_content(state, delta.content)

    def _on_run_step_delta(self, delta: RunStepDelta) -> None:
        state = self._resolve_step(delta.id, GraphEvent.ON_RUN_STEP_DELTA)
        if state is None:
            return
        state.status = StepStatus.IN_PROGRESS
        state.buffer.append(delta)
        for chunk in delta.tool_calls:
            self._append_tool_chunk(state, chunk)
        self._append_content(state, delta.content)

    def _on_tool_end(self, end: ToolEnd) -> None:
        state = self._resolve_step(end.step_id, GraphEvent.TOOL_END, allow_completed=True)
        if state is None:
            return
        part = self._tool_part(state, end.tool_call_id, end.name, end.args)
        self._finalize_tool_part(part, end.output)

    def _on_run_step_completed(self, result: RunStepCompleted) -> None:
        state = self._resolve_step(result.id, GraphEvent.ON_RUN_STEP_COMPLETED, allow_completed=True)
        if state is None:
            return
        ref = result.tool_call
        part = self._tool_part(state, ref.id, ref.name, ref.args)
        self._finalize_tool_part(part, result.output)

        if all(self.content_parts[i].finalized for i in state.tool_part_indices.values()):
            self._complete_step(state)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_step(self, step_id: str, kind: GraphEvent, allow_completed: bool = False) -> Optional[StepState]:
        state = self.steps.get(step_id)
        if state is None:
            self._violation(UnknownStepError(step_id, kind.value))
            return None
        if state.status == StepStatus.COMPLETED and not allow_completed:
            self._violation(FinalizedContentError(step_id, kind.value))
            return None
        return state

    def _violation(self, error: Exception) -> None:
        if self.strict:
            raise error
        logger.warning(f"Skipping event: {error}")

    def _append_content(self, state: StepState, content: Iterable[DeltaContent]) -> None:
        for item in content:
            if item.type == ContentType.TOOL_CALL:
                logger.debug(f"Ignoring tool_call content in delta for step {state.id}")
                continue
            index = state.part_indices.get(item.type)
            if index is None:
                index = len(self.content_parts)
                self.content_parts.append(ContentPart(type=item.type, step_id=state.id))
                state.part_indices[item.type] = index
            self.content_parts[index].text += item.text

    def _add_tool_part(self, state: StepState, call_id: str, name: str = "", args: str = "") -> ContentPart:
        part = ContentPart(
            type=ContentType.TOOL_CALL,
            tool_call=ToolCallPart(id=call_id, name=name, args=args),
            step_id=state.id,
        )
        state.tool_part_indices[call_id] = len(self.content_parts)
        state.tool_order.append(call_id)
        self.content_parts.append(part)
        return part

    def _tool_part(self, state: StepState, call_id: str, name: str = "", args: str = "") -> ContentPart:
        index = state.tool_part_indices.get(call_id)
        if index is None:
            return self._add_tool_part(state, call_id, name, args)
        return self.content_parts[index]

    def _append_tool_chunk(self, state: StepState, chunk: ToolCallChunk) -> None:
        if chunk.id is not None:
            part = self._tool_part(state, chunk.id, chunk.name or "")
        elif chunk.index < len(state.tool_order):
            part = self.content_parts[state.tool_part_indices[state.tool_order[chunk.index]]]
        else:
            self._violation(UnknownStepError(f"{state.id}[{chunk.index}]", GraphEvent.ON_RUN_STEP_DELTA.value))
            return

        if part.finalized:
            self._violation(FinalizedContentError(state.id, GraphEvent.ON_RUN_STEP_DELTA.value))
            return
        if chunk.name and not part.tool_call.name:
            part.tool_call.name = chunk.name
        part.tool_call.args += chunk.args

    def _finalize_tool_part(self, part: ContentPart, output: Optional[str]) -> None:
        if part.finalized:
            if output is not None and part.tool_call.output != output:
                logger.warning(
                    f"Tool call {part.tool_call.id} completed again with a different output; "
                    "keeping the first"
                )
            return
        if output is not None:
            part.tool_call.output = output
        part.finalized = True

    def _complete_step(self, state: StepState) -> None:
        state.status = StepStatus.COMPLETED
        for index in state.part_indices.values():
            self.content_parts[index].finalized = True

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def complete_steps(self) -> None:
        """Freeze finished steps; called once the stream is exhausted.

        Message steps are always frozen. Tool steps are frozen when every
        tool part is finalized, which covers runs whose ``TOOL_END`` handler
        never reports step completion. Tool steps with outstanding calls
        stay open.
        """
        for state in self.steps.values():
            if state.status == StepStatus.COMPLETED:
                continue
            if state.type == StepType.MESSAGE_CREATION:
                self._complete_step(state)
            elif all(self.content_parts[i].finalized for i in state.tool_part_indices.values()):
                self._complete_step(state)

    def text(self) -> str:
        """Concatenated text of all TEXT parts, in order."""
        return "".join(p.text for p in self.content_parts if p.type == ContentType.TEXT)

    def reasoning(self) -> str:
        return "".join(p.text for p in self.content_parts if p.type == ContentType.REASONING)

    def snapshot(self) -> List[ContentPart]:
        """Shallow copy of the current content sequence."""
        return list(self.content_parts)


def create_content_aggregator(strict: Optional[bool] = None) -> ContentAggregator:
    """Create a fresh aggregator; ``aggregator.content_parts`` is the live result."""
    return ContentAggregator(strict=strict)
