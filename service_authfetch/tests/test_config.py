"""
Unit tests for gateway configuration.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import (
    DEFAULT_AUTH_FAILURE_PHRASES,
    DEFAULT_BACKEND_PATH_PREFIXES,
    DEV_BACKEND,
    PROD_BACKEND,
    get_config,
)
from shared.errors import ConfigurationError


class TestGatewayConfig:
    """Test cases for GatewayConfig."""

    def test_defaults(self):
        """Test the documented defaults."""
        config = get_config(env="local")

        assert config.near_expiry_seconds == 60
        assert config.auth_failure_cooldown_seconds == 1.0
        assert config.request_timeout_seconds == 45.0
        assert config.backend_path_prefixes == DEFAULT_BACKEND_PATH_PREFIXES
        assert config.auth_failure_phrases == DEFAULT_AUTH_FAILURE_PHRASES
        assert config.enable_diag_endpoint is False

    def test_explicit_base_wins_and_is_trimmed(self):
        """Test that an explicit base is used with trailing slashes removed."""
        config = get_config(env="local", api_base_url=" https://api.example.com// ")

        assert config.api_base_url == "https://api.example.com"

    def test_local_default(self):
        """Test the local development backend."""
        assert get_config(env="local").api_base_url == DEV_BACKEND

    def test_production_default(self):
        """Test the production backend when no base is given."""
        assert get_config(env="production").api_base_url == PROD_BACKEND

    def test_environment_variables(self, monkeypatch):
        """Test that settings are read from AUTHFETCH_* variables."""
        monkeypatch.setenv("AUTHFETCH_API_BASE_URL", "https://staging.example.com/")
        monkeypatch.setenv("AUTHFETCH_NEAR_EXPIRY_SECONDS", "120")

        config = get_config()

        assert config.api_base_url == "https://staging.example.com"
        assert config.near_expiry_seconds == 120

    @pytest.mark.parametrize("base", ["/api", "api.example.com", "https://example.com/api/v1"])
    def test_production_rejects_bad_bases(self, base):
        """Test that production refuses relative or /api proxy bases."""
        with pytest.raises(ConfigurationError):
            get_config(env="production", api_base_url=base)

    def test_relative_base_allowed_outside_production(self):
        """Test that local setups may use a proxy path."""
        assert get_config(env="local", api_base_url="/api").api_base_url == "/api"
