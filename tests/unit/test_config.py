"""
Unit tests for RouterConfig.
"""

import pytest

from httprouter.config import RouterConfig


class TestRouterConfig:
    """Tests for defaults, environment loading and validation."""

    def test_defaults(self):
        """Test default values."""
        config = RouterConfig()
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.read_chunk_size == 2000
        assert config.log_format == "text"
        assert config.expose_errors is True
        config.validate()

    def test_from_env(self, monkeypatch):
        """Test HTTP_* variables override defaults."""
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "3000")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "debug")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "JSON")
        monkeypatch.setenv("HTTP_READ_CHUNK_SIZE", "512")
        monkeypatch.setenv("HTTP_EXPOSE_ERRORS", "false")

        config = RouterConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.read_chunk_size == 512
        assert config.expose_errors is False
        config.validate()

    def test_from_env_defaults(self, monkeypatch):
        """Test missing variables fall back to defaults."""
        for name in ("HTTP_HOST", "HTTP_PORT", "HTTP_LOG_FORMAT", "HTTP_EXPOSE_ERRORS"):
            monkeypatch.delenv(name, raising=False)
        config = RouterConfig.from_env()
        assert config.port == 8080
        assert config.expose_errors is True

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 70000},
        {"read_chunk_size": 0},
        {"max_request_size": 10},
        {"timeout": -1.0},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
    ])
    def test_validate_rejects(self, overrides):
        """Test invalid values raise ValueError."""
        with pytest.raises(ValueError):
            RouterConfig(**overrides).validate()
