"""
Authenticated-fetch gateway package.

The gateway sits between application code and the HTTP client, enforcing:
- Credentials: bearer tokens on backend-bound requests only
- Session upkeep: proactive and reactive single-flight refresh
- Recovery: exactly one retry after an auth failure
- Signalling: cooldown-gated auth failure events for the rest of the app

Structure:
- app.gateway: composition root (configure, install, reset, fetch).
- app.routing: backend-bound request classification.
- app.session: session models, token hooks and the refresh coordinator.
- app.events: publish/subscribe bus and the auth failure notifier.
- app.interceptor: the fetch middleware around httpx.AsyncClient.
- app.adapters: thin call wrappers (timeouts, diagnostics).
"""

from .gateway import AuthFetchGateway, create_gateway

__all__ = ["AuthFetchGateway", "create_gateway"]
