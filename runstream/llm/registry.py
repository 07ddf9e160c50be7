from typing import Callable, Dict, List, Optional
import logging

from ..config.settings import get_settings
from .base import ChatModel, ChatModelNotFoundError, LLMConfig, Providers
from .fake import FakeChatModel

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[LLMConfig], ChatModel]


def _fake_factory(config: LLMConfig) -> ChatModel:
    extra = config.model_extra or {}
    responses = extra.get("responses") or [""]
    return FakeChatModel(
        responses,
        provider=config.provider or Providers.FAKE.value,
        model=config.model or "fake-model",
        chunk_delay=float(extra.get("chunk_delay", 0.0)),
    )


class ChatModelRegistry:
    """Maps provider names to chat model factories.

    Registries are plain objects owned by whoever creates them; there is no
    shared module-level instance.
    """

    def __init__(self):
        self._factories: Dict[str, ChatModelFactory] = {}

    def register(self, provider: str, factory: ChatModelFactory, replace: bool = False) -> None:
        """Register a factory for a provider.

        Raises:
            ValueError: If the provider is taken and ``replace`` is False
        """
        if provider in self._factories and not replace:
            raise ValueError(f"Chat model factory for '{provider}' already registered")
        self._factories[provider] = factory
        logger.debug(f"Registered chat model factory for '{provider}'")

    def has(self, provider: str) -> bool:
        return provider in self._factories

    def providers(self) -> List[str]:
        return list(self._factories)

    def resolve_provider(self, config: LLMConfig) -> Optional[str]:
        return config.provider or get_settings().default_provider

    def create(self, config: LLMConfig) -> ChatModel:
        """Build a chat model for ``config``.

        Raises:
            ChatModelNotFoundError: If no factory matches the provider
        """
        provider = self.resolve_provider(config)
        factory = self._factories.get(provider) if provider else None
        if factory is None:
            raise ChatModelNotFoundError(provider, self._factories)
        return factory(config)


def default_registry() -> ChatModelRegistry:
    """New registry with the built-in ``fake`` provider."""
    registry = ChatModelRegistry()
    registry.register(Providers.FAKE.value, _fake_factory)
    return registry
