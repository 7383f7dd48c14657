"""
Tests for Tablo client configuration.
"""

import pytest
from pydantic import ValidationError

from tablo_client.config import (
    LIGHTHOUSE_BASE_URL,
    LighthouseConfig,
    TabloConfig,
    get_config,
    get_lighthouse_config,
)


class TestTabloConfig:
    """Test device API settings."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        monkeypatch.delenv("TABLO_HOST", raising=False)
        config = TabloConfig(_env_file=None)

        assert config.host == "127.0.0.1"
        assert config.port == 8887
        assert config.ssl is False
        assert config.timeout == 2.0
        assert config.watch_timeout == 30.0
        assert config.cache_ttl == 600.0

    def test_device_id_generated(self):
        """Test each config gets its own client device id."""
        assert TabloConfig(_env_file=None).device_id != TabloConfig(_env_file=None).device_id

    def test_from_environment(self, monkeypatch):
        """Test values from environment variables."""
        monkeypatch.setenv("TABLO_HOST", "192.168.1.20")
        monkeypatch.setenv("TABLO_PORT", "9000")
        monkeypatch.setenv("TABLO_ACCESS_KEY", "access")
        monkeypatch.setenv("TABLO_SSL", "true")

        config = get_config()

        assert config.host == "192.168.1.20"
        assert config.port == 9000
        assert config.access_key == "access"
        assert config.ssl is True

    def test_invalid_port(self):
        """Test port validation."""
        with pytest.raises(ValidationError):
            TabloConfig(port=0, _env_file=None)

    def test_invalid_timeout(self):
        """Test timeout validation."""
        with pytest.raises(ValidationError):
            TabloConfig(timeout=0, _env_file=None)


class TestLighthouseConfig:
    """Test Lighthouse settings."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        monkeypatch.delenv("LIGHTHOUSE_BASE_URL", raising=False)
        config = LighthouseConfig(_env_file=None)

        assert config.base_url == LIGHTHOUSE_BASE_URL
        assert config.timeout == 2.0

    def test_credential_overrides(self, monkeypatch):
        """Test explicit credentials win over the environment."""
        monkeypatch.setenv("LIGHTHOUSE_EMAIL", "env@example.com")
        monkeypatch.setenv("LIGHTHOUSE_PASSWORD", "env-password")

        config = get_lighthouse_config(email="arg@example.com")

        assert config.email == "arg@example.com"
        assert config.password == "env-password"
