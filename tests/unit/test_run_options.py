"""Tests for run configuration models."""

import pytest
from pydantic import ValidationError

from runstream.llm import LLMConfig
from runstream.models import GraphEvent
from runstream.orchestration import Calculator
from runstream.run import GraphConfig, RunConfig, StreamConfig
from tests.helpers.events import RecordingHandler


@pytest.fixture
def graph_config():
    return GraphConfig(llm_config=LLMConfig(provider="fake"))


class TestRunConfig:
    def test_defaults(self, graph_config):
        config = RunConfig(graph_config=graph_config)

        assert config.run_id.startswith("run_")
        assert config.return_content is False
        assert config.skip_cleanup is False
        assert config.custom_handlers == {}
        assert config.strict_events is None

    def test_run_ids_are_unique(self, graph_config):
        assert RunConfig(graph_config=graph_config).run_id != RunConfig(graph_config=graph_config).run_id

    def test_blank_run_id_rejected(self, graph_config):
        with pytest.raises(ValidationError):
            RunConfig(run_id="  ", graph_config=graph_config)

    def test_handler_keys_coerced(self, graph_config):
        handler = RecordingHandler()
        config = RunConfig(
            graph_config=graph_config,
            custom_handlers={"on_run_step": handler, GraphEvent.TOOL_END: [handler, handler]},
        )

        assert config.custom_handlers[GraphEvent.ON_RUN_STEP] == [handler]
        assert len(config.custom_handlers[GraphEvent.TOOL_END]) == 2

    def test_unknown_handler_kind_rejected(self, graph_config):
        with pytest.raises(ValidationError, match="Unrecognized event kind"):
            RunConfig(graph_config=graph_config, custom_handlers={"on_custom": RecordingHandler()})

    def test_non_callable_handler_rejected(self, graph_config):
        with pytest.raises(ValidationError):
            RunConfig(graph_config=graph_config, custom_handlers={"on_run_step": 42})

    def test_from_dict(self):
        config = RunConfig.model_validate({
            "run_id": "r1",
            "graph_config": {
                "type": "standard",
                "llm_config": {"provider": "azure", "model": "gpt-4o", "disable_streaming": True},
                "instructions": "You are a friendly AI assistant.",
            },
            "return_content": True,
        })

        assert config.graph_config.llm_config.disable_streaming is True
        assert config.graph_config.instructions.startswith("You are")


class TestGraphConfig:
    def test_only_standard_graph(self):
        with pytest.raises(ValidationError):
            GraphConfig(type="multi-agent", llm_config=LLMConfig(provider="fake"))

    def test_tools_must_be_tools(self):
        assert len(GraphConfig(llm_config=LLMConfig(provider="fake"), tools=[Calculator()]).tools) == 1
        with pytest.raises(ValidationError):
            GraphConfig(llm_config=LLMConfig(provider="fake"), tools=["calculator"])


class TestStreamConfig:
    def test_thread_id_required(self):
        with pytest.raises(ValidationError, match="thread_id"):
            StreamConfig(configurable={})

    def test_defaults(self):
        config = StreamConfig(configurable={"thread_id": "conversation-123"})
        assert config.thread_id == "conversation-123"
        assert config.stream_mode == "values"
        assert config.version == "v2"

    def test_invalid_version(self):
        with pytest.raises(ValidationError):
            StreamConfig(configurable={"thread_id": "t"}, version="v3")
