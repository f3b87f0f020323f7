"""
Adapters package for the gateway.

Thin call wrappers layered over the interceptor. Keep adapters free of
side effects outside of explicit calls.
"""

from .http_fetch import HttpFetch, DIAG_INVALID_SESSION_PATH

__all__ = [
    "DIAG_INVALID_SESSION_PATH",
    "HttpFetch",
]
