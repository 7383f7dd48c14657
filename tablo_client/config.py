"""
Tablo client configuration.

Settings for the device API and the Lighthouse cloud API, loaded from
environment variables (or a ``.env`` file) the same way for every service.
"""

import uuid
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LIGHTHOUSE_BASE_URL = "https://lighthousetv.ewscloud.com/api/v2"


class TabloConfig(BaseSettings):
    """Device API configuration from environment variables."""

    host: str = Field(
        default="127.0.0.1",
        description="Device hostname, IP address or full base URI",
    )

    port: int = Field(
        default=8887,
        description="Device API port (ignored when host is a full URI)",
        ge=1,
        le=65535,
    )

    ssl: bool = Field(
        default=False,
        description="Use HTTPS when host is not a full URI",
    )

    access_key: str = Field(
        default="",
        description="Device API access key used for request signing",
    )

    secret_key: str = Field(
        default="",
        description="Device API secret key used for request signing",
    )

    device_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Client device identifier sent with watch requests",
    )

    timeout: float = Field(
        default=2.0,
        description="Default request timeout (seconds)",
        gt=0.0,
        le=120.0,
    )

    watch_timeout: float = Field(
        default=30.0,
        description="Timeout for watch (session creation) requests (seconds)",
        gt=0.0,
        le=300.0,
    )

    cache_ttl: float = Field(
        default=600.0,
        description="Lifetime of cached guide airings (seconds)",
        ge=0.0,
    )

    request_logging: bool = Field(
        default=False,
        description="Log every outgoing request at debug level",
    )

    model_config = SettingsConfigDict(
        env_prefix="TABLO_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class LighthouseConfig(BaseSettings):
    """Lighthouse cloud API configuration from environment variables."""

    email: str = Field(default="", description="Lighthouse account email")

    password: str = Field(default="", description="Lighthouse account password")

    base_url: str = Field(
        default=LIGHTHOUSE_BASE_URL,
        description="Lighthouse API base URL",
    )

    timeout: float = Field(
        default=2.0,
        description="Default request timeout (seconds)",
        gt=0.0,
        le=120.0,
    )

    request_logging: bool = Field(
        default=False,
        description="Log every outgoing request at debug level",
    )

    model_config = SettingsConfigDict(
        env_prefix="LIGHTHOUSE_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def get_config() -> TabloConfig:
    """
    Get device API configuration from environment variables.

    Returns:
        TabloConfig: Configuration instance
    """
    return TabloConfig()


def get_lighthouse_config(email: Optional[str] = None, password: Optional[str] = None) -> LighthouseConfig:
    """
    Get Lighthouse configuration, overriding credentials when given.

    Args:
        email: Optional account email
        password: Optional account password

    Returns:
        LighthouseConfig: Configuration instance
    """
    overrides = {}
    if email is not None:
        overrides["email"] = email
    if password is not None:
        overrides["password"] = password
    return LighthouseConfig(**overrides)
