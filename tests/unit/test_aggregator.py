"""Tests for ContentAggregator."""

import logging

import pytest

from runstream.errors import FinalizedContentError, UnknownStepError
from runstream.models import ContentType
from runstream.streaming import ContentAggregator, StepStatus, create_content_aggregator
from tests.helpers.events import (
    message_delta,
    model_end,
    reasoning_delta,
    run_step,
    step_completed,
    tool_args_delta,
    tool_end,
    tool_step,
)


class TestMessageContent:
    """Text and reasoning deltas."""

    def test_deltas_append_in_order(self, aggregator):
        aggregator(run_step("s1"))
        for piece in ["Hel", "lo", ", ", "world"]:
            aggregator(message_delta("s1", piece))

        assert len(aggregator.content_parts) == 1
        assert aggregator.content_parts[0].type == ContentType.TEXT
        assert aggregator.text() == "Hello, world"

    def test_identical_deltas_are_not_deduplicated(self, aggregator):
        aggregator(run_step("s1"))
        aggregator(message_delta("s1", "ha"))
        aggregator(message_delta("s1", "ha"))

        assert aggregator.text() == "haha"

    def test_whole_text_delta_matches_token_deltas(self):
        whole = create_content_aggregator(strict=True)
        whole(run_step("s1"))
        whole(message_delta("s1", "The answer is 4."))

        tokens = create_content_aggregator(strict=True)
        tokens(run_step("s1"))
        for piece in ["The", " answer", " is", " 4."]:
            tokens(message_delta("s1", piece))

        assert whole.text() == tokens.text() == "The answer is 4."

    def test_reasoning_and_text_keep_arrival_order(self, aggregator):
        aggregator(run_step("s1"))
        aggregator(reasoning_delta("s1", "Let me think."))
        aggregator(message_delta("s1", "Done."))
        aggregator(reasoning_delta("s1", " More."))

        types = [p.type for p in aggregator.content_parts]
        assert types == [ContentType.REASONING, ContentType.TEXT]
        assert aggregator.reasoning() == "Let me think. More."
        assert aggregator.text() == "Done."

    def test_message_step_reserves_no_part_until_first_delta(self, aggregator):
        aggregator(run_step("s1"))
        assert aggregator.content_parts == []
        assert aggregator.steps["s1"].status == StepStatus.CREATED

    def test_steps_get_separate_parts(self, aggregator):
        aggregator(run_step("s1", index=0))
        aggregator(message_delta("s1", "first"))
        aggregator(run_step("s2", index=1))
        aggregator(message_delta("s2", "second"))

        assert [p.text for p in aggregator.content_parts] == ["first", "second"]
        assert [p.step_id for p in aggregator.content_parts] == ["s1", "s2"]

    def test_delta_buffered_on_step(self, aggregator):
        aggregator(run_step("s1"))
        aggregator(message_delta("s1", "a"))

        state = aggregator.steps["s1"]
        assert state.status == StepStatus.IN_PROGRESS
        assert len(state.buffer) == 1

    def test_duplicate_step_announcement_ignored(self, aggregator):
        aggregator(run_step("s1"))
        aggregator(message_delta("s1", "a"))
        aggregator(run_step("s1"))
        aggregator(message_delta("s1", "b"))

        assert aggregator.text() == "ab"
        assert len(aggregator.steps) == 1

    def test_model_end_carries_no_content(self, aggregator):
        aggregator(run_step("s1"))
        aggregator(model_end())
        assert aggregator.content_parts == []
        assert aggregator.events_seen == 2


class TestToolContent:
    """Tool steps, argument chunks and completion."""

    def test_tool_step_adds_placeholder_per_call(self, aggregator):
        aggregator(tool_step("t1", calls=[("call_1", "calculator"), ("call_2", "search")]))

        parts = aggregator.content_parts
        assert [p.type for p in parts] == [ContentType.TOOL_CALL, ContentType.TOOL_CALL]
        assert [p.tool_call.id for p in parts] == ["call_1", "call_2"]
        assert not any(p.finalized for p in parts)

    def test_argument_chunks_append_by_index(self, aggregator):
        aggregator(tool_step("t1"))
        aggregator(tool_args_delta("t1", '{"input": '))
        aggregator(tool_args_delta("t1", '"2+2"}'))

        assert aggregator.content_parts[0].tool_call.args == '{"input": "2+2"}'

    def test_argument_chunks_append_by_id(self, aggregator):
        aggregator(tool_step("t1", calls=[("call_1", "a"), ("call_2", "b")]))
        aggregator(tool_args_delta("t1", "{}", index=5, call_id="call_2"))

        assert aggregator.content_parts[1].tool_call.args == "{}"
        assert aggregator.content_parts[0].tool_call.args == ""

    def test_tool_end_sets_output_and_finalizes(self, aggregator):
        aggregator(tool_step("t1"))
        aggregator(tool_end("t1", output="4"))

        part = aggregator.content_parts[0]
        assert part.tool_call.output == "4"
        assert part.finalized

    def test_step_completed_finishes_tool_step(self, aggregator):
        aggregator(tool_step("t1"))
        aggregator(tool_end("t1", output="4"))
        aggregator(step_completed("t1", output="4"))

        assert aggregator.steps["t1"].status == StepStatus.COMPLETED
        assert aggregator.content_parts[0].tool_call.output == "4"

    def test_step_waits_for_every_tool_call(self, aggregator):
        aggregator(tool_step("t1", calls=[("call_1", "a"), ("call_2", "b")]))
        aggregator(step_completed("t1", call_id="call_1", output="x"))
        assert aggregator.steps["t1"].status != StepStatus.COMPLETED

        aggregator(step_completed("t1", call_id="call_2", output="y"))
        assert aggregator.steps["t1"].status == StepStatus.COMPLETED

    def test_refinalize_with_same_output_is_noop(self, aggregator):
        aggregator(tool_step("t1"))
        aggregator(step_completed("t1", output="4"))
        aggregator(step_completed("t1", output="4"))

        assert len(aggregator.content_parts) == 1
        assert aggregator.content_parts[0].tool_call.output == "4"

    def test_refinalize_with_other_output_keeps_first(self, aggregator, caplog):
        aggregator(tool_step("t1"))
        aggregator(tool_end("t1", output="4"))
        with caplog.at_level(logging.WARNING, logger="runstream.streaming.aggregator"):
            aggregator(step_completed("t1", output="5"))

        assert aggregator.content_parts[0].tool_call.output == "4"
        assert "keeping the first" in caplog.text

    def test_completion_without_output_keeps_tool_end_output(self, aggregator):
        aggregator(tool_step("t1"))
        aggregator(tool_end("t1", output="4"))
        aggregator(step_completed("t1", output=None))

        assert aggregator.content_parts[0].tool_call.output == "4"


class TestContractViolations:
    """Strict and tolerant handling of producer mistakes."""

    def test_unknown_step_raises_when_strict(self, aggregator):
        with pytest.raises(UnknownStepError) as exc_info:
            aggregator(message_delta("ghost", "boo"))
        assert exc_info.value.step_id == "ghost"

    def test_unknown_step_skipped_when_tolerant(self, tolerant_aggregator, caplog):
        with caplog.at_level(logging.WARNING, logger="runstream.streaming.aggregator"):
            tolerant_aggregator(message_delta("ghost", "boo"))

        assert tolerant_aggregator.content_parts == []
        assert "Unknown run step 'ghost'" in caplog.text

    def test_delta_after_step_completion_raises(self, aggregator):
        aggregator(tool_step("t1"))
        aggregator(step_completed("t1"))

        with pytest.raises(FinalizedContentError):
            aggregator(tool_args_delta("t1", "more"))

    def test_delta_after_message_steps_completed(self, aggregator):
        aggregator(run_step("s1"))
        aggregator(message_delta("s1", "done"))
        aggregator.complete_steps()

        assert aggregator.content_parts[0].finalized
        with pytest.raises(FinalizedContentError):
            aggregator(message_delta("s1", " again"))

    def test_complete_steps_closes_finished_tool_steps(self, aggregator):
        aggregator(tool_step("t1", calls=(("call_1", "calculator"), ("call_2", "calculator"))))
        aggregator(tool_end("t1", call_id="call_1"))
        aggregator(tool_end("t1", call_id="call_2", output="9"))
        aggregator(tool_step("t2", calls=(("call_3", "calculator"),)))

        aggregator.complete_steps()

        assert aggregator.steps["t1"].status == StepStatus.COMPLETED
        # call_3 never ended
        assert aggregator.steps["t2"].status != StepStatus.COMPLETED
        assert not aggregator.content_parts[2].finalized

    def test_finalized_content_skipped_when_tolerant(self, tolerant_aggregator):
        tolerant_aggregator(run_step("s1"))
        tolerant_aggregator(message_delta("s1", "done"))
        tolerant_aggregator.complete_steps()
        tolerant_aggregator(message_delta("s1", " again"))

        assert tolerant_aggregator.text() == "done"

    def test_unknown_tool_chunk_index(self, aggregator):
        aggregator(tool_step("t1"))
        with pytest.raises(UnknownStepError):
            aggregator(tool_args_delta("t1", "{}", index=3))

    def test_default_strictness_from_settings(self, monkeypatch):
        monkeypatch.setenv("RUNSTREAM_STRICT_EVENTS", "false")
        assert ContentAggregator().strict is False

        monkeypatch.setenv("RUNSTREAM_STRICT_EVENTS", "true")
        assert ContentAggregator().strict is True


class TestViews:
    def test_snapshot_is_a_copy(self, aggregator):
        aggregator(run_step("s1"))
        aggregator(message_delta("s1", "a"))
        snapshot = aggregator.snapshot()
        snapshot.clear()

        assert len(aggregator.content_parts) == 1

    def test_handle_entry_point(self, aggregator):
        result = aggregator.handle(run_step("s1"), {"thread_id": "t"}, None)
        assert result is None
        assert "s1" in aggregator.steps
