"""Fire-and-forget notifications between surfaces that show the same pages.

Delivery is best effort: a handler may never run (no subscriber, dropped
message) and a failing handler never affects the publisher or other
handlers. Everything a notification triggers (re-resolve, unwrap) is
idempotent, so correctness never depends on delivery.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

# Action names
ACTION_REFRESH = "highlights.refresh"
ACTION_SAVED = "highlight.saved"
ACTION_REMOVED = "highlight.removed"

Payload: TypeAlias = "dict[str, Any]"
Handler: TypeAlias = "Callable[[Payload], Awaitable[None]]"


class MessageChannelProtocol(Protocol):
    """Interface of a cross-surface notification channel."""

    def publish(self, action: str, payload: Payload) -> None:
        """Send a notification without waiting for it to be handled."""
        ...

    def subscribe(self, action: str, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *action*; returns an unsubscribe callable."""
        ...


class LocalChannel:
    """In-process channel delivering each notification in its own task.

    Task references are held until completion so pending deliveries are
    not garbage collected mid-flight.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._background_tasks: set[asyncio.Task[None]] = set()

    def subscribe(self, action: str, handler: Handler) -> Callable[[], None]:
        self._handlers[action].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(action, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, action: str, payload: Payload) -> None:
        handlers = list(self._handlers.get(action, ()))
        if not handlers:
            logger.debug("No subscribers for %s, dropped", action)
            return
        for handler in handlers:
            task = asyncio.create_task(self._deliver(action, handler, dict(payload)))
            self._background_tasks.add(task)
            task.add_done_callback(self._background_tasks.discard)

    async def _deliver(self, action: str, handler: Handler, payload: Payload) -> None:
        try:
            await handler(payload)
        except Exception:
            logger.exception("Handler for %s failed", action)

    @property
    def pending(self) -> int:
        """Number of deliveries still running."""
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait until every delivery published so far has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks))
