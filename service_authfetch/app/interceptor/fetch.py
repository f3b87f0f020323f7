"""
Fetch interceptor: credentials, proactive refresh and retry-once on auth failure.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple, Union

import httpx

from shared.errors import RefreshError
from shared.logging import get_logger, request_id_var
from shared.metrics import MetricsCollector

from ..events.notifier import AuthFailureNotifier
from ..routing.classifier import RequestClassifier
from ..session.hooks import TokenSupplier
from ..session.refresh import RefreshCoordinator


JSON_BODY_PREFIXES = ("{", "[")

# Keyword options that belong to AsyncClient.send rather than build_request
SEND_OPTIONS = ("auth", "follow_redirects")


@dataclass
class RequestDescriptor:
    """Editable shape of one outgoing call, so it can be re-issued on retry."""

    url: str
    method: str = "GET"
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: Optional[Union[str, bytes]] = None
    options: Dict[str, Any] = field(default_factory=dict)
    send_options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def normalize(
        cls,
        target: Union[str, httpx.URL, httpx.Request],
        *,
        method: Optional[str] = None,
        headers: Any = None,
        content: Optional[Union[str, bytes]] = None,
        **options,
    ) -> "RequestDescriptor":
        """Build a descriptor from a URL or an httpx.Request plus keyword overrides."""
        if isinstance(target, httpx.Request):
            target.read()
            descriptor = cls(
                url=str(target.url),
                method=target.method,
                headers=httpx.Headers(target.headers),
                content=target.content or None,
                options={"extensions": dict(target.extensions)},
            )
        else:
            descriptor = cls(url=str(target))

        if method:
            descriptor.method = method.upper()
        if headers is not None:
            descriptor.headers = httpx.Headers(headers)
        if content is not None:
            descriptor.content = content
            if "content-length" in descriptor.headers:
                del descriptor.headers["content-length"]

        for name in SEND_OPTIONS:
            if name in options:
                descriptor.send_options[name] = options.pop(name)
        descriptor.options.update(options)
        return descriptor


def with_auth_header(headers: httpx.Headers, token: Optional[str]) -> httpx.Headers:
    """Copy headers, overwriting Authorization whenever a current token exists."""
    merged = httpx.Headers(headers)
    if token:
        merged["Authorization"] = f"Bearer {token}"
    return merged


def ensure_json_content_type(headers: httpx.Headers, content: Any) -> httpx.Headers:
    """Set a JSON content-type for JSON-looking string bodies that have none."""
    merged = httpx.Headers(headers)
    if "content-type" in merged:
        return merged
    if not isinstance(content, str):
        return merged
    if content.strip().startswith(JSON_BODY_PREFIXES):
        merged["content-type"] = "application/json"
    return merged


def response_text(response: httpx.Response) -> str:
    try:
        return response.text
    except httpx.ResponseNotRead:
        return ""


class FetchInterceptor:
    """Middleware around ``httpx.AsyncClient.send``.

    Backend-bound calls get the freshest bearer token, a proactive refresh
    when the session is close to expiry, and exactly one refresh-and-retry
    after a 401 (or a 403 whose body reads like a session failure). A call
    that still fails is announced through the notifier and its response is
    returned as-is. Everything else passes through untouched.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        classifier: RequestClassifier,
        tokens: TokenSupplier,
        coordinator: RefreshCoordinator,
        notifier: AuthFailureNotifier,
        auth_failure_predicate: Callable[[str], bool],
        metrics: MetricsCollector,
        near_expiry_seconds: float = 60.0,
        debug_requests: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.classifier = classifier
        self.tokens = tokens
        self.coordinator = coordinator
        self.notifier = notifier
        self._is_session_failure = auth_failure_predicate
        self.metrics = metrics
        self.near_expiry_seconds = near_expiry_seconds
        self.debug_requests = debug_requests
        self._clock = clock
        self.logger = get_logger("authfetch.interceptor")

    async def fetch(self, target: Union[str, httpx.URL, httpx.Request], **init) -> httpx.Response:
        """Drop-in for ``client.request``: URL or Request in, Response out."""
        descriptor = RequestDescriptor.normalize(target, **init)

        if not self.classifier.is_backend_bound(descriptor.url):
            self.metrics.increment_counter("requests_total", classification="passthrough")
            return await self._send(descriptor, descriptor.headers)

        self.metrics.increment_counter("requests_total", classification="backend")
        correlation = request_id_var.set(str(uuid.uuid4()))
        try:
            with self.metrics.time_operation("request_duration_seconds"):
                return await self._fetch_backend(descriptor)
        finally:
            request_id_var.reset(correlation)

    async def _fetch_backend(self, descriptor: RequestDescriptor) -> httpx.Response:
        session = await self.tokens.current_session()
        if session is not None and session.is_near_expiry(self.near_expiry_seconds, now=self._clock()):
            self.logger.info("Session near expiry, refreshing before request", url=descriptor.url)
            await self._refresh_quietly()

        response = await self._attempt(descriptor)
        failed, _ = self._auth_failure(response)
        if not failed:
            return response

        self.logger.info("Backend rejected credentials, retrying once", url=descriptor.url, status=response.status_code)
        self.metrics.increment_counter("auth_retries_total")
        await self._refresh_quietly()

        response = await self._attempt(descriptor)
        failed, text = self._auth_failure(response)
        if failed:
            event = self.notifier.build_event(
                descriptor.url,
                response.status_code,
                text,
                response.headers.get("x-request-id"),
            )
            await self.notifier.notify(event)
        return response

    async def _attempt(self, descriptor: RequestDescriptor) -> httpx.Response:
        token = await self.tokens.freshest_token()
        headers = with_auth_header(descriptor.headers, token)
        headers = ensure_json_content_type(headers, descriptor.content)

        if self.debug_requests:
            self.logger.debug(
                "Backend request",
                url=descriptor.url,
                method=descriptor.method,
                auth_attached=bool(token),
            )

        send_options = descriptor.send_options
        if token:
            # The bearer token replaces any caller-supplied auth flow
            send_options = {k: v for k, v in send_options.items() if k != "auth"}
        return await self._send(descriptor, headers, send_options)

    async def _send(
        self,
        descriptor: RequestDescriptor,
        headers: httpx.Headers,
        send_options: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        request = self.client.build_request(
            descriptor.method,
            descriptor.url,
            headers=headers,
            content=descriptor.content,
            **descriptor.options,
        )
        options = descriptor.send_options if send_options is None else send_options
        return await self.client.send(request, **options)

    def _auth_failure(self, response: httpx.Response) -> Tuple[bool, str]:
        if response.status_code not in (401, 403):
            return False, ""
        text = response_text(response)
        if response.status_code == 401:
            return True, text
        return self._is_session_failure(text.lower()), text

    async def _refresh_quietly(self) -> None:
        try:
            await self.coordinator.refresh_once()
        except RefreshError as e:
            self.logger.warning("Continuing without a refreshed session", error=e.message)
