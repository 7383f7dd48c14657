"""
Pytest configuration and fixtures for Tablo client tests.

HTTP traffic is served by ``httpx.MockTransport`` routers, no network access
is needed.
"""

import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest

from tablo_client.device import Tablo
from tablo_client.lighthouse import Lighthouse

Handler = Callable[[httpx.Request], httpx.Response]


class Router:
    """Routes mock requests by method and path."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Union[Handler, Tuple[int, Any]]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, path: str, json_body: Any = None, status: int = 200) -> None:
        self.routes[(method, path)] = (status, json_body)

    def add_handler(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, path)] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))

        if route is None:
            return httpx.Response(404, json={"error": "not found"})

        if callable(route):
            return route(request)

        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


SERVER_INFO = {
    "server_id": "SID_1234567890",
    "name": "Living Room",
    "timezone": "",
    "version": "2.2.42",
    "local_address": "192.168.1.10",
    "setup_completed": True,
    "build_number": 1234,
    "model": {"wifi": False, "tuners": 4, "type": "quad", "name": "Tablo QUAD"},
    "availability": "ready",
    "cache_key": "abc",
    "product": "tablo",
}

CHANNELS = {
    "/guide/channels/S102": {
        "object_id": 102,
        "path": "/guide/channels/S102",
        "channel": {
            "channel_identifier": "S102",
            "call_sign": "WXYZ",
            "major": 7,
            "minor": 2,
            "network": "ABC",
        },
    },
    "/guide/channels/S101": {
        "object_id": 101,
        "path": "/guide/channels/S101",
        "channel": {
            "channel_identifier": "S101",
            "call_sign": "WXYZ",
            "major": 7,
            "minor": 1,
            "network": "ABC",
        },
    },
    "/guide/channels/S050": {
        "object_id": 50,
        "path": "/guide/channels/S050",
        "channel": {
            "channel_identifier": "S050",
            "call_sign": "KABC",
            "major": 4,
            "minor": 1,
            "network": "NBC",
        },
    },
}

WATCH_RESPONSE = {
    "token": "3e1d2a8c-session",
    "expires": "2025-10-14T12:01:00Z",
    "keepalive": 60,
    "playlist_url": "http://192.168.1.10:8887/stream/pl.m3u8?session=3e1d2a8c",
    "video_details": {"container_format": "mpegts", "flags": []},
}


def batch_handler(objects: Dict[str, Any]) -> Handler:
    """Answer ``/batch`` requests from a table of objects."""

    def handler(request: httpx.Request) -> httpx.Response:
        paths = json.loads(request.content)
        return httpx.Response(200, json={path: objects[path] for path in paths if path in objects})

    return handler


@pytest.fixture
def device_router() -> Router:
    """Router pre-loaded with device info and channels."""
    router = Router()
    router.add("GET", "/server/info", SERVER_INFO)
    router.add("GET", "/guide/channels", list(CHANNELS))
    router.add_handler("POST", "/batch", batch_handler(dict(CHANNELS)))
    return router


@pytest.fixture
def tablo(device_router: Router) -> Tablo:
    """Device client wired to the mock router."""
    return Tablo(
        "192.168.1.10",
        access_key="access",
        secret_key="secret",
        device_id="client-device-1",
        transport=device_router.transport,
    )


@pytest.fixture
def lighthouse_router() -> Router:
    """Router pre-loaded with a successful login."""
    router = Router()
    router.add(
        "POST",
        "/api/v2/login/",
        {"access_token": "token-1", "token_type": "Bearer", "is_verified": True},
    )
    return router


@pytest.fixture
def lighthouse(lighthouse_router: Router) -> Lighthouse:
    """Lighthouse client wired to the mock router."""
    return Lighthouse("user@example.com", "hunter2", transport=lighthouse_router.transport)
