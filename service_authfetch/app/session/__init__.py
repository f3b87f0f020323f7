"""
Session package for the gateway.

Holds the session/event models, the swappable token hooks and the
single-flight refresh coordinator.
"""

from .models import Session, AuthFailureEvent, AuthFailureReason
from .hooks import SessionHooks, TokenSupplier
from .refresh import RefreshCoordinator

__all__ = [
    "AuthFailureEvent",
    "AuthFailureReason",
    "RefreshCoordinator",
    "Session",
    "SessionHooks",
    "TokenSupplier",
]
