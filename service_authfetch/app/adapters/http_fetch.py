"""
Timeout-bounded fetch with an optional invalid-session diagnostic.
"""

import asyncio
from typing import Awaitable, Callable, Optional, Union
from urllib.parse import urlsplit

import httpx

from shared.logging import get_logger

from ..events.bus import AUTH_EXPIRED_TOPIC, EventBus
from ..events.notifier import SESSION_EXPIRED_MESSAGE
from ..session.models import AuthFailureEvent


DEFAULT_TIMEOUT_SECONDS = 45.0
DIAG_INVALID_SESSION_PATH = "/__diag/invalid-session-401"
DIAG_REQUEST_ID = "diag-invalid-session-401"

Fetcher = Callable[..., Awaitable[httpx.Response]]


class HttpFetch:
    """Caller-facing fetch that bounds the whole call, retries included.

    ``total_timeout`` of zero or less disables the bound. When the diagnostic
    is enabled, requests for ``DIAG_INVALID_SESSION_PATH`` never reach the
    network: they answer with a synthesized ``401 Invalid session`` and
    announce ``auth-expired``, which lets a developer exercise the sign-out
    path by hand.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        bus: EventBus,
        *,
        default_timeout: float = DEFAULT_TIMEOUT_SECONDS,
        diag_enabled: bool = False,
    ):
        self._fetch = fetcher
        self.bus = bus
        self.default_timeout = default_timeout
        self.diag_enabled = diag_enabled
        self.logger = get_logger("authfetch.http_fetch")

    async def __call__(
        self,
        target: Union[str, httpx.URL, httpx.Request],
        *,
        total_timeout: Optional[float] = None,
        **init,
    ) -> httpx.Response:
        url = str(target.url) if isinstance(target, httpx.Request) else str(target)

        if self.diag_enabled and self._is_diag_url(url):
            return self._diag_response(url)

        seconds = self.default_timeout if total_timeout is None else total_timeout
        if not seconds or seconds <= 0:
            return await self._fetch(target, **init)

        try:
            return await asyncio.wait_for(self._fetch(target, **init), seconds)
        except asyncio.TimeoutError as e:
            self.logger.warning("Request timed out", url=url, timeout=seconds)
            raise httpx.TimeoutException("Request timed out") from e

    @staticmethod
    def _is_diag_url(url: str) -> bool:
        path = urlsplit(url).path if url.startswith("http") else url.split("?", 1)[0]
        return path == DIAG_INVALID_SESSION_PATH

    def _diag_response(self, url: str) -> httpx.Response:
        self.logger.info("Serving diagnostic invalid-session response", url=url)
        response = httpx.Response(
            401,
            text="Invalid session",
            headers={
                "content-type": "text/plain; charset=utf-8",
                "x-request-id": DIAG_REQUEST_ID,
            },
        )
        event = AuthFailureEvent(
            message=SESSION_EXPIRED_MESSAGE,
            url=url,
            status=401,
            request_id=DIAG_REQUEST_ID,
            reason="invalid_session",
        )
        self.bus.publish(AUTH_EXPIRED_TOPIC, event.auth_expired_detail())
        return response
