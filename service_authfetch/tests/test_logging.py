"""
Unit tests for structured logging helpers.
"""

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.logging import add_correlation_context, add_service_context, request_id_var


class TestLoggingProcessors:
    """Test cases for the structlog processors."""

    def test_service_context_from_logger_name(self):
        """Test that the service is derived from the dotted logger name."""
        event = add_service_context(None, "info", {"logger": "authfetch.interceptor"})

        assert event["service"] == "authfetch"

    def test_correlation_context(self):
        """Test that the current request id is attached only when set."""
        assert "request_id" not in add_correlation_context(None, "info", {})

        token = request_id_var.set("abc")
        try:
            event = add_correlation_context(None, "info", {})
        finally:
            request_id_var.reset(token)

        assert event["request_id"] == "abc"
