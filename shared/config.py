"""
Shared configuration management for the authenticated-fetch gateway.
"""

import re
from typing import List, Optional
from urllib.parse import urlsplit

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError


DEV_BACKEND = "http://localhost:3001"
PROD_BACKEND = "https://people-power.onrender.com"

DEFAULT_BACKEND_PATH_PREFIXES = [
    "/me/",
    "/api/",
    "/auth/",
    "/users/",
    "/movements",
    "/platform-acknowledgment",
    "/incidents",
    "/events",
    "/notifications",
    "/reports",
    "/resources",
    "/uploads",
    "/admin/",
]

DEFAULT_AUTH_FAILURE_PHRASES = [
    "invalid session",
    "unauthorized session",
    "auth session missing",
    "jwt expired",
    "no authorization",
]

_ABSOLUTE_HTTP = re.compile(r"^https?://", re.IGNORECASE)


def trim_trailing_slashes(value: Optional[str]) -> str:
    return str(value or "").strip().rstrip("/")


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="AUTHFETCH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class GatewayConfig(BaseConfig):
    """Settings for the authenticated-fetch gateway."""

    # Backend
    api_base_url: Optional[str] = Field(default=None)
    backend_path_prefixes: List[str] = Field(default_factory=lambda: list(DEFAULT_BACKEND_PATH_PREFIXES))

    # Session handling
    near_expiry_seconds: float = Field(default=60.0, ge=0)
    auth_failure_cooldown_seconds: float = Field(default=1.0, ge=0)
    auth_failure_phrases: List[str] = Field(default_factory=lambda: list(DEFAULT_AUTH_FAILURE_PHRASES))

    # Fetch adapter
    request_timeout_seconds: float = Field(default=45.0)
    enable_diag_endpoint: bool = Field(default=False)
    debug_requests: bool = Field(default=False)

    @model_validator(mode="after")
    def _resolve_api_base_url(self) -> "GatewayConfig":
        explicit = trim_trailing_slashes(self.api_base_url)

        if explicit and self.env == "production":
            if not _ABSOLUTE_HTTP.match(explicit):
                raise ConfigurationError(
                    "api_base_url must be an absolute http(s) URL in production",
                    details={"api_base_url": explicit}
                )
            if urlsplit(explicit).path.startswith("/api"):
                raise ConfigurationError(
                    "api_base_url must not point at an /api proxy in production",
                    details={"api_base_url": explicit}
                )

        if explicit:
            self.api_base_url = explicit
        elif self.env == "local":
            self.api_base_url = DEV_BACKEND
        else:
            self.api_base_url = PROD_BACKEND
        return self


def get_config(**overrides) -> GatewayConfig:
    """Get gateway configuration, with keyword overrides taking precedence over the environment."""
    return GatewayConfig(**overrides)
