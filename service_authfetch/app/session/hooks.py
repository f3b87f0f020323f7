"""
Swappable session hooks supplied by the application.
"""

import inspect
from dataclasses import dataclass, fields, replace
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from shared.errors import ConfigurationError
from shared.logging import get_logger

from .models import Session


def _none(*args, **kwargs) -> None:
    return None


async def _none_async(*args, **kwargs) -> None:
    return None


async def maybe_await(value: Any) -> Any:
    """Resolve hook results that may or may not be awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(frozen=True)
class SessionHooks:
    """Token/session getters plus the refresh and auth-expired callbacks.

    Every hook defaults to a no-op returning None so the gateway can be
    installed before the session source is ready. Instances are immutable;
    ``replace`` returns a new set so a configure call swaps all hooks at once.
    """

    get_access_token: Callable[[], Optional[str]] = _none
    get_session: Callable[[], Any] = _none
    get_access_token_async: Callable[[], Awaitable[Optional[str]]] = _none_async
    get_session_async: Callable[[], Awaitable[Any]] = _none_async
    on_auth_expired: Callable[[dict], Any] = _none
    refresh_session: Callable[[], Any] = _none_async

    def replace(self, **options) -> "SessionHooks":
        known = {f.name for f in fields(self)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError("Unknown gateway hooks", details={"hooks": unknown})

        changes = {name: hook for name, hook in options.items() if hook is not None}
        for name, hook in changes.items():
            if not callable(hook):
                raise ConfigurationError(f"Hook '{name}' must be callable")
        return replace(self, **changes)


class TokenSupplier:
    """Reads tokens and sessions through the currently configured hooks."""

    def __init__(self, hooks_provider: Callable[[], SessionHooks]):
        self._hooks = hooks_provider
        self.logger = get_logger("authfetch.tokens")

    def get_access_token(self) -> Optional[str]:
        return self._hooks().get_access_token() or None

    def get_session(self) -> Optional[Session]:
        return Session.coerce(self._hooks().get_session())

    async def get_access_token_async(self) -> Optional[str]:
        return await maybe_await(self._hooks().get_access_token_async()) or None

    async def get_session_async(self) -> Optional[Session]:
        return Session.coerce(await maybe_await(self._hooks().get_session_async()))

    async def current_session(self) -> Optional[Session]:
        """Best-effort session, falling back to the authoritative getter on a miss."""
        try:
            session = self.get_session()
        except ValidationError as e:
            self.logger.warning("Ignoring malformed session", error=str(e))
            return None
        if session is not None:
            return session
        try:
            return await self.get_session_async()
        except ValidationError as e:
            self.logger.warning("Ignoring malformed session", error=str(e))
            return None
        except Exception as e:
            self.logger.debug("Async session lookup failed", error=str(e))
            return None

    async def freshest_token(self) -> Optional[str]:
        """Best-effort token, falling back to the authoritative getter on a miss."""
        token = self.get_access_token()
        if token:
            return token
        try:
            return await self.get_access_token_async()
        except Exception as e:
            self.logger.debug("Async token lookup failed", error=str(e))
            return None
