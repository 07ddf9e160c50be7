"""Tests for the chat model interface, the scripted model and the registry."""

import pytest

from runstream.llm import (
    ChatChunk,
    ChatModelNotFoundError,
    ChatModelRegistry,
    FakeChatModel,
    FakeResponse,
    LLMConfig,
    ProviderError,
    default_registry,
    merge_chunks,
)
from runstream.llm.fake import estimate_tokens, split_tokens
from runstream.models import HumanMessage, ToolCall, ToolCallChunk


async def collect(model, messages):
    return [chunk async for chunk in model.astream(messages)]


class TestSplitTokens:
    @pytest.mark.parametrize("text", [
        "Hello world",
        "  leading and trailing  ",
        "one",
        "multi\nline\n\ttext",
        "   ",
    ])
    def test_concatenation_is_lossless(self, text):
        assert "".join(split_tokens(text)) == text

    def test_word_level_chunks(self):
        assert split_tokens("The answer is 4.") == ["The", " answer", " is", " 4."]

    def test_empty(self):
        assert split_tokens("") == []


def test_estimate_tokens_never_below_one():
    assert estimate_tokens(0) == 1
    assert estimate_tokens(40) == 10


class TestFakeChatModel:
    @pytest.mark.asyncio
    async def test_streams_text_then_usage(self):
        model = FakeChatModel(["The answer is 4."])
        chunks = await collect(model, [HumanMessage("What is 2+2?")])

        assert "".join(c.text for c in chunks) == "The answer is 4."
        final = chunks[-1]
        assert final.usage is not None
        assert final.usage.input_tokens > 0
        assert final.usage.output_tokens > 0
        assert final.response_metadata["finish_reason"] == "stop"

    @pytest.mark.asyncio
    async def test_reasoning_streams_before_text(self):
        model = FakeChatModel([FakeResponse(text="4", reasoning="Add them.")])
        chunks = await collect(model, [HumanMessage("2+2?")])

        kinds = ["reasoning" if c.reasoning else "text" for c in chunks if c.reasoning or c.text]
        assert kinds == ["reasoning", "reasoning", "text"]

    @pytest.mark.asyncio
    async def test_responses_cycle(self):
        model = FakeChatModel(["first", "second"])
        texts = []
        for _ in range(3):
            result = await model.ainvoke([HumanMessage("go")])
            texts.append(result.message.content)

        assert texts == ["first", "second", "first"]

    @pytest.mark.asyncio
    async def test_calls_are_recorded(self):
        model = FakeChatModel(["ok"])
        messages = [HumanMessage("hello")]
        await model.ainvoke(messages)

        assert model.calls == [messages]

    @pytest.mark.asyncio
    async def test_tool_calls_round_trip_through_ainvoke(self):
        call = ToolCall(id="call_1", name="calculator", args={"input": "2+2"})
        model = FakeChatModel([FakeResponse(tool_calls=[call])])

        result = await model.ainvoke([HumanMessage("2+2?")])

        assert result.message.tool_calls == [call]
        assert result.message.response_metadata["finish_reason"] == "tool_calls"
        assert result.usage.total_tokens == result.usage.input_tokens + result.usage.output_tokens

    @pytest.mark.asyncio
    async def test_error_response_raises_provider_error(self):
        model = FakeChatModel([FakeResponse(error=RuntimeError("upstream down"))], provider="openai")

        with pytest.raises(ProviderError) as exc_info:
            await collect(model, [HumanMessage("hi")])
        assert exc_info.value.provider == "openai"
        assert isinstance(exc_info.value.original_error, RuntimeError)

    def test_requires_responses(self):
        with pytest.raises(ValueError):
            FakeChatModel([])


class TestMergeChunks:
    def test_merges_text_reasoning_and_metadata(self):
        message = merge_chunks([
            ChatChunk(reasoning="think "),
            ChatChunk(text="Hello"),
            ChatChunk(text=" world", response_metadata={"finish_reason": "stop"}),
        ])
        assert message.content == "Hello world"
        assert message.reasoning == "think "
        assert message.response_metadata == {"finish_reason": "stop"}

    def test_tool_call_chunks_grouped_by_index(self):
        message = merge_chunks([
            ChatChunk(tool_call_chunks=[ToolCallChunk(index=0, id="call_a", name="calculator", args='{"inp')]),
            ChatChunk(tool_call_chunks=[ToolCallChunk(index=0, args='ut": "1+1"}')]),
            ChatChunk(tool_call_chunks=[ToolCallChunk(index=1, name="noop")]),
        ])
        assert [c.name for c in message.tool_calls] == ["calculator", "noop"]
        assert message.tool_calls[0].args == {"input": "1+1"}
        assert message.tool_calls[0].id == "call_a"
        # Chunks without an id get one derived from their index
        assert message.tool_calls[1].id == "call_1"

    def test_invalid_tool_arguments(self):
        with pytest.raises(ProviderError, match="Invalid arguments"):
            merge_chunks([ChatChunk(tool_call_chunks=[ToolCallChunk(index=0, id="c", name="x", args="{oops")])])


class TestChatModelRegistry:
    def test_default_registry_has_fake(self):
        registry = default_registry()
        assert registry.providers() == ["fake"]

        model = registry.create(LLMConfig(provider="fake", responses=["hi"]))
        assert isinstance(model, FakeChatModel)
        assert model.responses[0].text == "hi"

    def test_registries_are_independent(self):
        first = default_registry()
        second = default_registry()
        first.register("custom", lambda config: FakeChatModel(["x"]))

        assert first.has("custom")
        assert not second.has("custom")

    def test_unknown_provider(self):
        with pytest.raises(ChatModelNotFoundError, match="openai"):
            default_registry().create(LLMConfig(provider="openai"))

    def test_missing_provider(self):
        with pytest.raises(ChatModelNotFoundError):
            ChatModelRegistry().create(LLMConfig())

    def test_default_provider_setting(self, monkeypatch):
        monkeypatch.setenv("RUNSTREAM_DEFAULT_PROVIDER", "fake")
        model = default_registry().create(LLMConfig(responses=["hi"]))
        assert model.provider == "fake"

    def test_duplicate_registration(self):
        registry = default_registry()
        with pytest.raises(ValueError):
            registry.register("fake", lambda config: FakeChatModel(["x"]))
        registry.register("fake", lambda config: FakeChatModel(["y"]), replace=True)
        assert registry.create(LLMConfig(provider="fake")).responses[0].text == "y"


class TestLLMConfig:
    def test_extra_keys_kept(self):
        config = LLMConfig(provider="azure", model="gpt-4o", azureOpenAIApiVersion="2024-02-01")
        assert config.model_extra == {"azureOpenAIApiVersion": "2024-02-01"}

    @pytest.mark.parametrize("streaming,disable,expected", [
        (True, False, True),
        (True, True, False),
        (False, False, False),
    ])
    def test_streams_tokens(self, streaming, disable, expected):
        config = LLMConfig(provider="fake", streaming=streaming, disable_streaming=disable)
        assert config.streams_tokens is expected
