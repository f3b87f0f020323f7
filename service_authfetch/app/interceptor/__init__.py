"""
Interceptor package for the gateway.

Contains the fetch middleware wrapped around ``httpx.AsyncClient`` and the
response heuristics it relies on.
"""

from .fetch import FetchInterceptor, RequestDescriptor, ensure_json_content_type, with_auth_header
from .heuristics import phrase_matcher

__all__ = [
    "FetchInterceptor",
    "RequestDescriptor",
    "ensure_json_content_type",
    "phrase_matcher",
    "with_auth_header",
]
