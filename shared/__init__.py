"""
Shared utilities for the authenticated-fetch gateway.

This package aggregates common building blocks consumed by the gateway:

- config: Gateway configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses

Any cross-cutting logic should live here to avoid import cycles.
Do not import from service_authfetch into shared/.
"""
