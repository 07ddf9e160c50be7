"""Shared pytest fixtures for runstream tests."""

import pytest

from runstream.config.settings import DEFAULT_PROVIDER_ENV_VAR, LOG_LEVEL_ENV_VAR, STRICT_EVENTS_ENV_VAR
from runstream.llm import LLMConfig
from runstream.models import HumanMessage
from runstream.run import GraphConfig, RunConfig, StreamConfig
from runstream.streaming import ContentAggregator, HandlerRegistry


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end run scenarios")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host RUNSTREAM_* variables out of the tests."""
    for name in (STRICT_EVENTS_ENV_VAR, LOG_LEVEL_ENV_VAR, DEFAULT_PROVIDER_ENV_VAR):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def aggregator():
    """Strict aggregator."""
    return ContentAggregator(strict=True)


@pytest.fixture
def tolerant_aggregator():
    return ContentAggregator(strict=False)


@pytest.fixture
def registry():
    return HandlerRegistry()


@pytest.fixture
def fake_llm_config():
    """LLM config for the built-in fake provider."""
    return LLMConfig(provider="fake", model="fake-model", responses=["Hello there, how can I help?"])


@pytest.fixture
def stream_config():
    return StreamConfig(configurable={"thread_id": "thread-1"})


@pytest.fixture
def user_inputs():
    return {"messages": [HumanMessage("hi there")]}


@pytest.fixture
def make_run_config():
    """Build a RunConfig around an LLMConfig."""
    def _make(llm_config, **kwargs):
        graph_kwargs = {
            key: kwargs.pop(key)
            for key in ("tools", "instructions", "max_iterations")
            if key in kwargs
        }
        return RunConfig(
            graph_config=GraphConfig(llm_config=llm_config, **graph_kwargs),
            **kwargs,
        )
    return _make
