from .base import (
    ChatChunk,
    ChatModel,
    ChatModelNotFoundError,
    ChatResult,
    LLMConfig,
    ProviderError,
    Providers,
    merge_chunks,
)
from .fake import FakeChatModel, FakeResponse
from .registry import ChatModelRegistry, default_registry

__all__ = [
    "ChatChunk",
    "ChatModel",
    "ChatModelNotFoundError",
    "ChatResult",
    "LLMConfig",
    "ProviderError",
    "Providers",
    "merge_chunks",
    "FakeChatModel",
    "FakeResponse",
    "ChatModelRegistry",
    "default_registry",
]
