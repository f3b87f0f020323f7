"""
Auth failure notifications with a cooldown gate.
"""

import asyncio
from typing import Any, Callable, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..session.hooks import maybe_await
from ..session.models import AuthFailureEvent, AuthFailureReason
from .bus import AUTH_EXPIRED_TOPIC, BACKEND_AUTH_FAILED_TOPIC, EventBus, Handler, Unsubscribe


SESSION_EXPIRED_MESSAGE = "Your session has expired. Please sign in again."
AUTH_FAILED_MESSAGE = (
    "Backend authentication failed ({status}). Check that requests include an "
    "Authorization header and that the backend trusts the same identity provider."
)


class AuthFailureNotifier:
    """Announces requests that stayed unauthenticated after their retry.

    Each notification cycle publishes ``backend-auth-failed`` then
    ``auth-expired`` and awaits the application's ``on_auth_expired`` hook.
    Once a cycle starts, further calls are suppressed until a timer clears
    the gate ``cooldown_seconds`` after the hook returns.
    """

    def __init__(
        self,
        bus: EventBus,
        on_auth_expired: Callable[[dict], Any],
        *,
        auth_failure_predicate: Callable[[str], bool],
        cooldown_seconds: float = 1.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.bus = bus
        self._on_auth_expired = on_auth_expired
        self._is_session_failure = auth_failure_predicate
        self.cooldown_seconds = cooldown_seconds
        self.metrics = metrics
        self.logger = get_logger("authfetch.notifier")

        self._handling = False
        self._release_handle: Optional[asyncio.TimerHandle] = None

    @property
    def gate_active(self) -> bool:
        return self._handling

    def classify(self, body_text: str) -> AuthFailureReason:
        text = str(body_text or "").lower()
        if self._is_session_failure(text) or "invalid session" in text:
            return "invalid_session"
        return "auth_failed"

    def build_event(self, url: str, status: int, body_text: str, request_id: Optional[str]) -> AuthFailureEvent:
        reason = self.classify(body_text)
        if reason == "invalid_session":
            message = SESSION_EXPIRED_MESSAGE
        else:
            message = AUTH_FAILED_MESSAGE.format(status=status)
        return AuthFailureEvent(
            message=message,
            url=url,
            status=status,
            request_id=request_id or None,
            reason=reason,
        )

    async def notify(self, event: AuthFailureEvent) -> bool:
        """Emit one notification cycle unless the cooldown gate is closed.

        Returns True when the cycle ran, False when it was suppressed.
        """
        if self._handling:
            self.logger.info("Auth failure notification suppressed", url=event.url, status=event.status)
            if self.metrics is not None:
                self.metrics.increment_counter("notifications_suppressed_total")
            return False

        self._handling = True
        try:
            self.logger.info(
                "Backend authentication failed",
                url=event.url,
                status=event.status,
                reason=event.reason,
                upstream_request_id=event.request_id,
            )
            if self.metrics is not None:
                self.metrics.increment_counter("auth_failures_total", reason=event.reason)

            self.bus.publish(BACKEND_AUTH_FAILED_TOPIC, event.backend_auth_failed_detail())
            self.bus.publish(AUTH_EXPIRED_TOPIC, event.auth_expired_detail())

            try:
                await maybe_await(self._on_auth_expired(event.auth_expired_detail()))
            except Exception as e:
                self.logger.error("on_auth_expired hook failed", error=str(e))
        finally:
            self._schedule_release()
        return True

    def on_auth_expired_event(self, listener: Handler) -> Unsubscribe:
        """Subscribe to auth-expired notifications."""
        return self.bus.subscribe(AUTH_EXPIRED_TOPIC, listener)

    def _schedule_release(self) -> None:
        if self._release_handle is not None:
            self._release_handle.cancel()
        loop = asyncio.get_running_loop()
        self._release_handle = loop.call_later(self.cooldown_seconds, self._release)

    def _release(self) -> None:
        self._handling = False
        self._release_handle = None

    def reset(self) -> None:
        """Open the gate immediately and drop any pending timer."""
        if self._release_handle is not None:
            self._release_handle.cancel()
        self._release()
