"""
Unit tests for the single-flight refresh coordinator.
"""

import asyncio
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_authfetch.app.session.refresh import RefreshCoordinator
from shared.errors import RefreshError
from shared.metrics import MetricsCollector


class TestRefreshCoordinator:
    """Test cases for RefreshCoordinator."""

    @pytest.fixture
    def calls(self):
        """Invocation counter shared with the refresh callback."""
        return {"count": 0}

    @pytest.fixture
    def metrics(self):
        """Isolated metrics collector."""
        return MetricsCollector("authfetch")

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_refresh(self, calls, metrics):
        """Test that N concurrent callers trigger exactly one refresh."""
        async def refresh():
            calls["count"] += 1
            await asyncio.sleep(0.02)

        coordinator = RefreshCoordinator(refresh, metrics=metrics)

        results = await asyncio.gather(*[coordinator.refresh_once() for _ in range(10)])

        assert results == [True] * 10
        assert calls["count"] == 1
        assert coordinator.in_flight is False
        assert metrics.get_sample("authfetch_refresh_total", outcome="success") == 1

    @pytest.mark.asyncio
    async def test_slot_clears_after_settlement(self, calls):
        """Test that a later call starts a new refresh."""
        async def refresh():
            calls["count"] += 1

        coordinator = RefreshCoordinator(refresh)

        await coordinator.refresh_once()
        await coordinator.refresh_once()

        assert calls["count"] == 2

    @pytest.mark.asyncio
    async def test_failure_propagates_to_all_waiters(self, calls, metrics):
        """Test that a failing refresh rejects every waiter and clears the slot."""
        async def refresh():
            calls["count"] += 1
            await asyncio.sleep(0.01)
            raise RuntimeError("identity provider unavailable")

        coordinator = RefreshCoordinator(refresh, metrics=metrics)

        results = await asyncio.gather(
            *[coordinator.refresh_once() for _ in range(3)],
            return_exceptions=True
        )

        assert calls["count"] == 1
        assert all(isinstance(result, RefreshError) for result in results)
        assert isinstance(results[0].__cause__, RuntimeError)
        assert coordinator.in_flight is False
        assert metrics.get_sample("authfetch_refresh_total", outcome="failure") == 1

    @pytest.mark.asyncio
    async def test_sync_refresh_callback(self, calls):
        """Test that a plain function is accepted as the refresh callback."""
        def refresh():
            calls["count"] += 1

        coordinator = RefreshCoordinator(refresh)

        assert await coordinator.refresh_once() is True
        assert calls["count"] == 1

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_refresh(self, calls):
        """Test that cancelling one caller leaves the shared refresh running."""
        started = asyncio.Event()
        release = asyncio.Event()

        async def refresh():
            calls["count"] += 1
            started.set()
            await release.wait()

        coordinator = RefreshCoordinator(refresh)
        first = asyncio.ensure_future(coordinator.refresh_once())
        second = asyncio.ensure_future(coordinator.refresh_once())

        await started.wait()
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        release.set()
        assert await second is True
        assert calls["count"] == 1

    @pytest.mark.asyncio
    async def test_reset_forgets_pending_refresh(self, calls):
        """Test that reset lets the next caller start a new refresh."""
        release = asyncio.Event()

        async def refresh():
            calls["count"] += 1
            await release.wait()

        coordinator = RefreshCoordinator(refresh)
        pending = asyncio.ensure_future(coordinator.refresh_once())
        await asyncio.sleep(0)

        coordinator.reset()
        fresh = asyncio.ensure_future(coordinator.refresh_once())
        await asyncio.sleep(0)
        release.set()

        assert await pending is True
        assert await fresh is True
        assert calls["count"] == 2
