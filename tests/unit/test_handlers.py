"""Tests for the built-in usage, metadata and tool-completion handlers."""

import logging
from unittest.mock import Mock

import pytest

from runstream.models import AIMessage, GraphEvent, ModelEnd, StreamEvent, UsageMetadata
from runstream.streaming import MetadataAggregator, ModelEndHandler, ToolEndHandler, create_metadata_aggregator
from tests.helpers.events import model_end, tool_end


class TestModelEndHandler:
    """Usage collection per model invocation."""

    def test_collects_one_record_per_event(self):
        collected = []
        handler = ModelEndHandler(collected)

        handler.handle(model_end(10, 5))
        handler.handle(model_end(20, 7))

        assert [u.total_tokens for u in collected] == [15, 27]
        assert handler.collected_usage is collected

    def test_owns_a_list_when_none_given(self):
        handler = ModelEndHandler()
        handler.handle(model_end(1, 1))
        assert len(handler.collected_usage) == 1

    def test_falls_back_to_message_usage(self):
        usage = UsageMetadata(input_tokens=3, output_tokens=4, total_tokens=7)
        event = StreamEvent(GraphEvent.CHAT_MODEL_END, ModelEnd(output=AIMessage(content="x", usage_metadata=usage)))
        handler = ModelEndHandler()

        handler.handle(event)
        assert handler.collected_usage == [usage]

    def test_missing_usage_collects_nothing(self):
        event = StreamEvent(GraphEvent.CHAT_MODEL_END, ModelEnd(output=AIMessage(content="x")))
        handler = ModelEndHandler()

        handler.handle(event)
        assert handler.collected_usage == []

    def test_other_kinds_ignored(self, caplog):
        handler = ModelEndHandler()
        with caplog.at_level(logging.WARNING, logger="runstream.streaming.handlers"):
            handler.handle(tool_end("t1"))

        assert handler.collected_usage == []
        assert "ignoring" in caplog.text


class TestToolEndHandler:
    """Tool completion forwarding to the graph."""

    def test_asks_graph_to_complete_step(self):
        graph = Mock()
        event = tool_end("t1", output="4")
        metadata = {"thread_id": "t"}

        ToolEndHandler().handle(event, metadata, graph)

        graph.handle_tool_call_completed.assert_called_once_with(event.data, metadata, omit_output=False)

    def test_omit_output_forwarded(self):
        graph = Mock()
        event = tool_end("t1")

        ToolEndHandler(omit_output=True).handle(event, None, graph)

        graph.handle_tool_call_completed.assert_called_once_with(event.data, None, omit_output=True)

    def test_callback_runs_before_completion(self):
        order = []
        graph = Mock()
        graph.handle_tool_call_completed.side_effect = lambda *args, **kwargs: order.append("graph")
        handler = ToolEndHandler(callback=lambda data, metadata: order.append(("callback", data.tool_call_id)))

        handler.handle(tool_end("t1", call_id="call_9"), {}, graph)

        assert order == [("callback", "call_9"), "graph"]

    def test_requires_graph(self):
        with pytest.raises(ValueError, match="requires a graph"):
            ToolEndHandler().handle(tool_end("t1"))


class TestMetadataAggregator:
    """Provider metadata collection."""

    def test_handle_llm_end_collects_metadata(self):
        aggregator = create_metadata_aggregator()
        usage = UsageMetadata(input_tokens=2, output_tokens=3, total_tokens=5)
        output = AIMessage(content="hi", usage_metadata=usage, response_metadata={"finish_reason": "stop"})

        aggregator.handle_llm_end(output, provider="fake", model="fake-model")

        assert aggregator.collected == [{
            "finish_reason": "stop",
            "usage": {"input_tokens": 2, "output_tokens": 3, "total_tokens": 5, "input_token_details": {}},
            "provider": "fake",
            "model": "fake-model",
        }]

    def test_usable_as_event_handler(self):
        aggregator = MetadataAggregator()
        aggregator.handle(model_end(1, 2))
        aggregator.handle(model_end(3, 4))

        assert len(aggregator.collected) == 2
        assert aggregator.collected[1]["usage"]["total_tokens"] == 7
        assert aggregator.collected[0]["provider"] == "fake"

    def test_response_metadata_wins_over_arguments(self):
        aggregator = MetadataAggregator()
        output = AIMessage(content="", response_metadata={"model": "served-model"})

        aggregator.handle_llm_end(output, model="requested-model")
        assert aggregator.collected[0]["model"] == "served-model"

    def test_factory_returns_fresh_instances(self):
        assert create_metadata_aggregator() is not create_metadata_aggregator()
        assert create_metadata_aggregator().collected == []
