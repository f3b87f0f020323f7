"""
Single-flight session refresh.
"""

import asyncio
from typing import Any, Callable, Optional

from shared.errors import RefreshError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .hooks import maybe_await


class RefreshCoordinator:
    """Ensures at most one session refresh runs at a time.

    The first caller starts the refresh as a task; every caller arriving
    while it is pending awaits that same task and sees the same outcome.
    The slot is cleared when the task settles, so the next call starts a
    fresh refresh. Callers are shielded from each other: cancelling one
    waiter does not cancel the shared refresh.
    """

    def __init__(self, refresh_session: Callable[[], Any], metrics: Optional[MetricsCollector] = None):
        self._refresh_session = refresh_session
        self.metrics = metrics
        self.logger = get_logger("authfetch.refresh")
        self._inflight: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._inflight is not None

    async def refresh_once(self) -> bool:
        """Join the pending refresh or start one. Raises RefreshError on failure."""
        task = self._inflight
        if task is None:
            task = asyncio.ensure_future(self._run())
            self._inflight = task
            task.add_done_callback(self._settle)
        else:
            self.logger.debug("Joining in-flight session refresh")
        return await asyncio.shield(task)

    async def _run(self) -> bool:
        self.logger.info("Refreshing session")
        try:
            await maybe_await(self._refresh_session())
        except Exception as e:
            self._record("failure")
            self.logger.warning("Session refresh failed", error=str(e))
            raise RefreshError(
                f"Session refresh failed: {str(e)}",
                details={"error": str(e)}
            ) from e
        self._record("success")
        return True

    def _settle(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the outcome retrieved even if every waiter was cancelled.
        if not task.cancelled():
            task.exception()

    def _record(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.increment_counter("refresh_total", outcome=outcome)

    def reset(self) -> None:
        """Forget any pending refresh. The task itself is left to finish."""
        self._inflight = None
