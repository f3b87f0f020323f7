"""
Unit tests for the timeout-bounded fetch adapter.
"""

import asyncio
import pytest
import httpx
from unittest.mock import AsyncMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_authfetch.app.adapters.http_fetch import (
    DIAG_INVALID_SESSION_PATH,
    DIAG_REQUEST_ID,
    HttpFetch,
)
from service_authfetch.app.events.bus import AUTH_EXPIRED_TOPIC, InMemoryEventBus
from service_authfetch.app.gateway import AuthFetchGateway
from shared.config import get_config
from shared.errors import ConfigurationError


class TestHttpFetch:
    """Test cases for HttpFetch."""

    @pytest.fixture
    def bus(self):
        """Bus recording auth-expired events."""
        bus = InMemoryEventBus()
        bus.expired = []
        bus.subscribe(AUTH_EXPIRED_TOPIC, bus.expired.append)
        return bus

    @pytest.mark.asyncio
    async def test_passes_through_within_timeout(self, bus):
        """Test that fast calls are forwarded with their options."""
        fetcher = AsyncMock(return_value=httpx.Response(200))
        http_fetch = HttpFetch(fetcher, bus, default_timeout=1.0)

        response = await http_fetch("/movements", method="POST", content="{}")

        assert response.status_code == 200
        fetcher.assert_awaited_once_with("/movements", method="POST", content="{}")

    @pytest.mark.asyncio
    async def test_total_timeout(self, bus):
        """Test that slow calls are abandoned with a TimeoutException."""
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return httpx.Response(200)

        http_fetch = HttpFetch(slow, bus, default_timeout=45.0)

        with pytest.raises(httpx.TimeoutException):
            await http_fetch("/movements", total_timeout=0.05)

    @pytest.mark.asyncio
    async def test_non_positive_timeout_disables_bound(self, bus):
        """Test that total_timeout <= 0 means no bound."""
        async def slowish(*args, **kwargs):
            await asyncio.sleep(0.05)
            return httpx.Response(204)

        http_fetch = HttpFetch(slowish, bus, default_timeout=0.01)

        response = await http_fetch("/movements", total_timeout=0)

        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_diag_endpoint(self, bus):
        """Test the synthesized invalid-session response."""
        fetcher = AsyncMock()
        http_fetch = HttpFetch(fetcher, bus, diag_enabled=True)

        response = await http_fetch(f"https://api.example.com{DIAG_INVALID_SESSION_PATH}")

        assert response.status_code == 401
        assert response.text == "Invalid session"
        assert response.headers["x-request-id"] == DIAG_REQUEST_ID
        fetcher.assert_not_awaited()
        assert len(bus.expired) == 1
        assert bus.expired[0]["reason"] == "invalid_session"
        assert bus.expired[0]["request_id"] == DIAG_REQUEST_ID

    @pytest.mark.asyncio
    async def test_diag_endpoint_disabled(self, bus):
        """Test that the diagnostic path is an ordinary request when disabled."""
        fetcher = AsyncMock(return_value=httpx.Response(404))
        http_fetch = HttpFetch(fetcher, bus)

        response = await http_fetch(DIAG_INVALID_SESSION_PATH)

        assert response.status_code == 404
        fetcher.assert_awaited_once()
        assert bus.expired == []


class TestGatewayHttpFetch:
    """Test cases for HttpFetch wiring on the gateway."""

    @pytest.mark.asyncio
    async def test_requires_install(self):
        """Test that http_fetch refuses to run before install."""
        gateway = AuthFetchGateway(get_config(env="test", api_base_url="https://api.example.com"))

        with pytest.raises(ConfigurationError):
            await gateway.http_fetch("/movements")

    @pytest.mark.asyncio
    async def test_routes_through_interceptor(self):
        """Test that http_fetch attaches credentials like fetch does."""
        seen = []

        def handler(request):
            seen.append(request.headers.get("authorization"))
            return httpx.Response(200)

        gateway = AuthFetchGateway(get_config(env="test", api_base_url="https://api.example.com"))
        gateway.install(httpx.AsyncClient(
            base_url="https://api.example.com",
            transport=httpx.MockTransport(handler)
        ))
        gateway.configure(get_access_token=lambda: "tok")

        response = await gateway.http_fetch("/movements", total_timeout=5)

        assert response.status_code == 200
        assert seen == ["Bearer tok"]
