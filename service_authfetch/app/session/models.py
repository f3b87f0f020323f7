"""
Session and auth failure models.
"""

import time
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


AuthFailureReason = Literal["invalid_session", "auth_failed"]


class Session(BaseModel):
    """Session as handed out by the external session source. Read-only here."""

    model_config = ConfigDict(extra="allow", frozen=True)

    access_token: Optional[str] = None
    expires_at: Optional[float] = None

    @classmethod
    def coerce(cls, value: Any) -> Optional["Session"]:
        """Accept a Session, a mapping or any object exposing the session attributes."""
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, dict):
            return cls.model_validate(value)
        return cls(
            access_token=getattr(value, "access_token", None),
            expires_at=getattr(value, "expires_at", None),
        )

    def is_near_expiry(self, within_seconds: float, now: Optional[float] = None) -> bool:
        if not self.expires_at:
            return False
        now = time.time() if now is None else now
        return self.expires_at - int(now) <= within_seconds


def _now_ms() -> int:
    return int(time.time() * 1000)


class AuthFailureEvent(BaseModel):
    """A request that still failed authentication after its retry."""

    message: str
    url: str
    status: int
    request_id: Optional[str] = None
    reason: AuthFailureReason = "auth_failed"
    at: int = Field(default_factory=_now_ms)

    def backend_auth_failed_detail(self) -> dict:
        return self.model_dump(exclude={"reason"})

    def auth_expired_detail(self) -> dict:
        return self.model_dump()
