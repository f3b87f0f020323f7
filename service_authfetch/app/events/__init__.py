"""
Events package for the gateway.

Publish/subscribe plumbing and the cooldown-gated auth failure notifier.
"""

from .bus import EventBus, InMemoryEventBus, AUTH_EXPIRED_TOPIC, BACKEND_AUTH_FAILED_TOPIC
from .notifier import AuthFailureNotifier

__all__ = [
    "AUTH_EXPIRED_TOPIC",
    "AuthFailureNotifier",
    "BACKEND_AUTH_FAILED_TOPIC",
    "EventBus",
    "InMemoryEventBus",
]
