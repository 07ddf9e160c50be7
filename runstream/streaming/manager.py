"""
Handler registry and dispatcher for run events.

Handlers are registered per event kind and invoked in registration order for
every event of that kind. A handler may be synchronous or return an
awaitable; awaitables are scheduled as tasks immediately so the event pump
never waits on a slow handler. :meth:`HandlerRegistry.wait_for_handlers` is
the completion barrier that joins every task scheduled since the registry
was created.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Protocol, Set, Union, runtime_checkable

from ..errors import HandlerError
from ..models.events import GraphEvent, StreamEvent, coerce_kind

logger = logging.getLogger(__name__)


@runtime_checkable
class EventHandler(Protocol):
    """Observer invoked for each event of the kind it is registered for."""

    def handle(
        self,
        event: StreamEvent,
        metadata: Optional[Dict[str, Any]] = None,
        graph: Any = None,
    ) -> Optional[Awaitable[None]]:
        ...


HandlerCallable = Callable[..., Optional[Awaitable[None]]]


class FunctionHandler:
    """Adapts a plain callable to the EventHandler protocol.

    The callable receives ``(event, metadata, graph)``.
    """

    def __init__(self, func: HandlerCallable):
        self.func = func

    def handle(self, event: StreamEvent, metadata: Optional[Dict[str, Any]] = None, graph: Any = None):
        return self.func(event, metadata, graph)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.func, '__name__', self.func)!r})"


def as_handler(handler: Union[EventHandler, HandlerCallable]) -> EventHandler:
    if isinstance(handler, EventHandler):
        return handler
    if callable(handler):
        return FunctionHandler(handler)
    raise TypeError(f"Handler must expose handle() or be callable, got {type(handler).__name__}")


class HandlerRegistry:
    """Maps event kinds to ordered handler lists and dispatches events."""

    def __init__(self) -> None:
        self._handlers: Dict[GraphEvent, List[EventHandler]] = {}
        self._pending: Set[asyncio.Future] = set()
        self._errors: List[BaseException] = []
        self.dispatched: Dict[GraphEvent, int] = {}

    @classmethod
    def from_mapping(
        cls,
        handlers: Mapping[Union[str, GraphEvent], Union[EventHandler, HandlerCallable]],
    ) -> HandlerRegistry:
        """Build a registry from a ``{kind: handler}`` mapping."""
        registry = cls()
        for kind, handler in handlers.items():
            registry.register(kind, handler)
        return registry

    def register(self, kind: Union[str, GraphEvent], handler: Union[EventHandler, HandlerCallable]) -> EventHandler:
        """Add a handler for a kind; the same kind may have many handlers.

        Returns:
            The registered handler (wrapped if a plain callable was given)
        """
        kind = coerce_kind(kind)
        wrapped = as_handler(handler)
        self._handlers.setdefault(kind, []).append(wrapped)
        logger.debug(f"Registered {type(wrapped).__name__} for {kind.value}")
        return wrapped

    def handlers_for(self, kind: Union[str, GraphEvent]) -> List[EventHandler]:
        return list(self._handlers.get(coerce_kind(kind), []))

    @property
    def kinds(self) -> List[GraphEvent]:
        return list(self._handlers)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def errors(self) -> List[BaseException]:
        return list(self._errors)

    def dispatch(
        self,
        event: StreamEvent,
        metadata: Optional[Dict[str, Any]] = None,
        graph: Any = None,
    ) -> None:
        """Invoke every handler registered for ``event.kind``, in order.

        Synchronous failures are recorded and do not stop the remaining
        handlers. Awaitable results are scheduled on the running loop and
        tracked until :meth:`wait_for_handlers`.
        """
        self.dispatched[event.kind] = self.dispatched.get(event.kind, 0) + 1

        for handler in self._handlers.get(event.kind, ()):
            try:
                result = handler.handle(event, metadata, graph)
            except Exception as e:
                logger.error(f"Handler {handler!r} failed on {event.kind.value}: {e}")
                self._errors.append(e)
                continue

            if inspect.isawaitable(result):
                self._track(result, handler, event.kind)

    def _track(self, awaitable: Awaitable[None], handler: EventHandler, kind: GraphEvent) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def _done(fut: asyncio.Future) -> None:
            self._pending.discard(fut)
            if fut.cancelled():
                return
            error = fut.exception()
            if error is not None:
                logger.error(f"Async handler {handler!r} failed on {kind.value}: {error}")
                self._errors.append(error)

        task.add_done_callback(_done)

    async def wait_for_handlers(self, raise_errors: bool = True) -> None:
        """Join all outstanding handler work.

        Handlers may dispatch further events while running, so this loops
        until no tracked task remains.

        Raises:
            HandlerError: If any handler failed since the registry was created
        """
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
            # Done callbacks run on the next loop iteration
            await asyncio.sleep(0)

        if raise_errors and self._errors:
            raise HandlerError(self._errors) from self._errors[0]

    async def cancel_pending(self) -> None:
        """Cancel outstanding handler tasks and wait for them to unwind."""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()
