"""
Composition root for the authenticated-fetch gateway.
"""

import time
from typing import Callable, Optional, Union

import httpx

from shared.config import GatewayConfig, get_config
from shared.errors import ConfigurationError
from shared.logging import configure_logging, get_logger
from shared.metrics import MetricsCollector, get_metrics_collector

from .adapters.http_fetch import HttpFetch
from .events.bus import EventBus, Handler, InMemoryEventBus, Unsubscribe
from .events.notifier import AuthFailureNotifier
from .interceptor.fetch import FetchInterceptor
from .interceptor.heuristics import phrase_matcher
from .routing.classifier import RequestClassifier
from .session.hooks import SessionHooks, TokenSupplier
from .session.refresh import RefreshCoordinator


SERVICE_NAME = "authfetch"


class AuthFetchGateway:
    """Process-wide owner of the interceptor, the refresh slot and the cooldown gate.

    Build one at application start-up, ``configure`` it with session hooks
    (before or after install), ``install`` it once, and hand it to anything
    that talks to the backend. ``reset`` returns it to the uninstalled,
    unconfigured state.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        *,
        bus: Optional[EventBus] = None,
        auth_failure_predicate: Optional[Callable[[str], bool]] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or get_config()
        self.logger = get_logger(f"{SERVICE_NAME}.gateway")
        self.bus = bus if bus is not None else InMemoryEventBus()
        self.metrics = metrics or get_metrics_collector(SERVICE_NAME)
        self.hooks = SessionHooks()
        self._clock = clock

        self.auth_failure_predicate = auth_failure_predicate or phrase_matcher(self.config.auth_failure_phrases)
        self.classifier = RequestClassifier(self.config.api_base_url, self.config.backend_path_prefixes)
        self.tokens = TokenSupplier(lambda: self.hooks)
        self.coordinator = RefreshCoordinator(lambda: self.hooks.refresh_session(), metrics=self.metrics)
        self.notifier = AuthFailureNotifier(
            self.bus,
            lambda detail: self.hooks.on_auth_expired(detail),
            auth_failure_predicate=self.auth_failure_predicate,
            cooldown_seconds=self.config.auth_failure_cooldown_seconds,
            metrics=self.metrics,
        )

        self._interceptor: Optional[FetchInterceptor] = None
        self._http_fetch: Optional[HttpFetch] = None
        self._owned_client: Optional[httpx.AsyncClient] = None

    @property
    def installed(self) -> bool:
        return self._interceptor is not None

    def configure(self, **options) -> "AuthFetchGateway":
        """Swap any of the session hooks in one step; omitted hooks keep their value.

        Accepted hooks: get_access_token, get_session, get_access_token_async,
        get_session_async, on_auth_expired, refresh_session.
        """
        self.hooks = self.hooks.replace(**options)
        self.logger.info(
            "Gateway hooks configured",
            hooks=sorted(name for name, hook in options.items() if hook is not None),
        )
        return self

    def install(self, client: Optional[httpx.AsyncClient] = None) -> FetchInterceptor:
        """Wrap ``client`` (or a new client on the configured base). Idempotent."""
        if self._interceptor is not None:
            return self._interceptor

        if client is None:
            client = httpx.AsyncClient(base_url=self.config.api_base_url)
            self._owned_client = client

        self._interceptor = FetchInterceptor(
            client,
            classifier=self.classifier,
            tokens=self.tokens,
            coordinator=self.coordinator,
            notifier=self.notifier,
            auth_failure_predicate=self.auth_failure_predicate,
            metrics=self.metrics,
            near_expiry_seconds=self.config.near_expiry_seconds,
            debug_requests=self.config.debug_requests,
            clock=self._clock,
        )
        self._http_fetch = HttpFetch(
            self._interceptor.fetch,
            self.bus,
            default_timeout=self.config.request_timeout_seconds,
            diag_enabled=self.config.enable_diag_endpoint,
        )
        self.logger.info("Gateway installed", api_base_url=self.config.api_base_url)
        return self._interceptor

    async def fetch(self, target: Union[str, httpx.URL, httpx.Request], **init) -> httpx.Response:
        """Send a request through the interceptor."""
        return await self._require_installed().fetch(target, **init)

    async def http_fetch(
        self,
        target: Union[str, httpx.URL, httpx.Request],
        *,
        total_timeout: Optional[float] = None,
        **init,
    ) -> httpx.Response:
        """Like ``fetch`` but bounded by a total timeout (45 s unless overridden)."""
        self._require_installed()
        return await self._http_fetch(target, total_timeout=total_timeout, **init)

    async def refresh_once(self) -> bool:
        """Join or start the single in-flight session refresh."""
        return await self.coordinator.refresh_once()

    def is_backend_bound(self, url: str) -> bool:
        return self.classifier.is_backend_bound(url)

    def on_auth_expired_event(self, listener: Handler) -> Unsubscribe:
        """Observe auth-expired notifications; returns a callable that unsubscribes."""
        return self.notifier.on_auth_expired_event(listener)

    async def reset(self) -> None:
        """Uninstall, restore default hooks and clear the refresh slot and cooldown gate."""
        self.coordinator.reset()
        self.notifier.reset()
        self.hooks = SessionHooks()
        self._interceptor = None
        self._http_fetch = None
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None

    def _require_installed(self) -> FetchInterceptor:
        if self._interceptor is None:
            raise ConfigurationError("Gateway is not installed; call install() first")
        return self._interceptor

    async def __aenter__(self) -> "AuthFetchGateway":
        self.install()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.reset()


def create_gateway(config: Optional[GatewayConfig] = None, **gateway_options) -> AuthFetchGateway:
    """Build a gateway with logging configured from ``config``."""
    config = config or get_config()
    configure_logging(SERVICE_NAME, config.log_level)
    return AuthFetchGateway(config, **gateway_options)
