"""
Routing package for the gateway.

Decides which outgoing requests are backend-bound and therefore receive
credentials.
"""

from .classifier import RequestClassifier

__all__ = ["RequestClassifier"]
