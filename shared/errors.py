"""
Shared error handling for the authenticated-fetch gateway.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class AuthFetchException(Exception):
    """Base exception for the gateway."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ConfigurationError(AuthFetchException):
    """Invalid configuration or lifecycle misuse."""

    def __init__(self, message: str = "Invalid configuration", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIGURATION_ERROR", message, details)


class RefreshError(AuthFetchException):
    """Session refresh failed."""

    def __init__(self, message: str = "Session refresh failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("REFRESH_ERROR", message, details)
