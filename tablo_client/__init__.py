"""
Tablo client

Async clients for the Tablo device API (HMAC-signed, on the local network)
and the Lighthouse cloud API.
"""

__version__ = "1.0.0"

from tablo_client.config import LighthouseConfig, TabloConfig
from tablo_client.device import Tablo
from tablo_client.device_api import TabloAPI
from tablo_client.exceptions import AuthenticationError, TabloAPIError, TabloError
from tablo_client.lighthouse import Lighthouse
from tablo_client.models import Channel, DeviceInfo, PlayerSession

__all__ = [
    "Tablo",
    "TabloAPI",
    "Lighthouse",
    "TabloConfig",
    "LighthouseConfig",
    "TabloError",
    "TabloAPIError",
    "AuthenticationError",
    "Channel",
    "DeviceInfo",
    "PlayerSession",
]
