"""Scripted chat model for tests and local runs."""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from ..core.normalization.usage import normalize_usage
from ..models.events import ToolCallChunk
from ..models.messages import BaseMessage, ToolCall
from .base import ChatChunk, ChatModel, ProviderError

logger = logging.getLogger(__name__)

# Rough heuristic used when no tokenizer is involved
CHARS_PER_TOKEN = 4

_TOKEN_RE = re.compile(r"\s*\S+|\s+$")


@dataclass
class FakeResponse:
    """One scripted model turn."""
    text: str = ""
    reasoning: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    error: Optional[BaseException] = None


def estimate_tokens(char_count: int) -> int:
    """Character-based token estimate; never below 1."""
    return max(1, char_count // CHARS_PER_TOKEN)


def split_tokens(text: str) -> List[str]:
    """Split text into word-level chunks whose concatenation is ``text``."""
    return _TOKEN_RE.findall(text)


class FakeChatModel(ChatModel):
    """
    Replays scripted responses in order, cycling when exhausted.

    Each call streams reasoning, then text split at word boundaries, then one
    chunk per tool call, then a final chunk carrying estimated usage. Every
    call's input is kept in ``calls``.
    """

    def __init__(
        self,
        responses: Sequence[Union[str, FakeResponse]],
        provider: str = "fake",
        model: Optional[str] = "fake-model",
        chunk_delay: float = 0.0,
    ):
        if not responses:
            raise ValueError("FakeChatModel needs at least one response")
        self.responses = [r if isinstance(r, FakeResponse) else FakeResponse(text=r) for r in responses]
        self.provider = provider
        self.model = model
        self.chunk_delay = chunk_delay
        self.calls: List[List[BaseMessage]] = []
        self._index = 0

    def _next_response(self) -> FakeResponse:
        response = self.responses[self._index % len(self.responses)]
        self._index += 1
        return response

    async def astream(
        self,
        messages: Sequence[BaseMessage],
        tools: Optional[Sequence[Any]] = None,
    ) -> AsyncIterator[ChatChunk]:
        self.calls.append(list(messages))
        response = self._next_response()
        logger.debug(f"Fake model call {self._index} for {self.provider}/{self.model}")

        if response.error is not None:
            raise ProviderError(self.provider, response.error)

        for piece in split_tokens(response.reasoning):
            await asyncio.sleep(self.chunk_delay)
            yield ChatChunk(reasoning=piece)

        for piece in split_tokens(response.text):
            await asyncio.sleep(self.chunk_delay)
            yield ChatChunk(text=piece)

        arg_chars = 0
        for index, call in enumerate(response.tool_calls):
            args = json.dumps(call.args)
            arg_chars += len(args)
            yield ChatChunk(tool_call_chunks=[ToolCallChunk(index=index, id=call.id, name=call.name, args=args)])

        prompt_chars = sum(len(m.content) for m in messages)
        completion_chars = len(response.text) + len(response.reasoning) + arg_chars
        usage = normalize_usage(
            {
                "prompt_tokens": estimate_tokens(prompt_chars),
                "completion_tokens": estimate_tokens(completion_chars),
            },
            provider=self.provider,
        )
        yield ChatChunk(usage=usage, response_metadata=self._response_metadata(response))

    def _response_metadata(self, response: FakeResponse) -> Dict[str, Any]:
        return {
            "model_name": self.model,
            "finish_reason": "tool_calls" if response.tool_calls else "stop",
        }
