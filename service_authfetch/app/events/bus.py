"""
Publish/subscribe bus for gateway notifications.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Protocol

from shared.logging import get_logger


AUTH_EXPIRED_TOPIC = "auth-expired"
BACKEND_AUTH_FAILED_TOPIC = "backend-auth-failed"

Handler = Callable[[Dict[str, Any]], Any]
Unsubscribe = Callable[[], None]


class EventBus(Protocol):
    """Anything the gateway can announce auth failures through."""

    def publish(self, topic: str, detail: Dict[str, Any]) -> None:
        ...

    def subscribe(self, topic: str, handler: Handler) -> Unsubscribe:
        ...


class InMemoryEventBus:
    """Synchronous in-process bus.

    Handlers run in subscription order. A failing handler is logged and
    does not prevent the remaining handlers from seeing the event.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self.logger = get_logger("authfetch.events")

    def publish(self, topic: str, detail: Dict[str, Any]) -> None:
        for handler in list(self._handlers.get(topic, ())):
            try:
                handler(dict(detail))
            except Exception as e:
                self.logger.error("Event handler failed", topic=topic, error=str(e))

    def subscribe(self, topic: str, handler: Handler) -> Unsubscribe:
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))

    def clear(self) -> None:
        self._handlers.clear()
