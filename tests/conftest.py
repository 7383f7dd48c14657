"""
Pytest configuration and shared fixtures for cross-package tests
"""

import asyncio
import json
import tempfile
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import MagicMock, patch

import httpx
import pytest


@pytest.fixture(scope="session")
def test_env_vars():
    """Provide test environment variables."""
    return {
        "TABLO_HOST": "192.168.1.10",
        "TABLO_PORT": "8887",
        "TABLO_ACCESS_KEY": "test-access-key",
        "TABLO_SECRET_KEY": "test-secret-key",
        "TABLO_DEVICE_ID": "test-client-device",
        "TRANSCODER_FFMPEG_BINARY": "ffmpeg",
        "TRANSCODER_READY_POLL_INTERVAL": "0.01",
        "TRANSCODER_READY_TIMEOUT": "2",
        "TRANSCODER_SHUTDOWN_TIMEOUT": "0.1",
        "LOG_LEVEL": "DEBUG",
    }


@pytest.fixture
def mock_env(monkeypatch, test_env_vars):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def temp_output_dir():
    """Create temporary directory for HLS output."""
    with tempfile.TemporaryDirectory(prefix="test_hls_") as temp_dir:
        yield Path(temp_dir)


class FakeTabloDevice:
    """In-memory Tablo device answering the HTTP API."""

    def __init__(self):
        self.info = {"server_id": "SID_INTEGRATION", "name": "Test Tablo", "local_address": "192.168.1.10"}
        self.channels = {
            "/guide/channels/S102": {
                "object_id": 102,
                "path": "/guide/channels/S102",
                "channel": {"channel_identifier": "S102", "call_sign": "WXYZ", "major": 7, "minor": 2},
            },
        }
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.deleted: List[str] = []
        self.keepalives: List[str] = []
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path

        if (method, path) == ("GET", "/server/info"):
            return httpx.Response(200, json=self.info)
        if (method, path) == ("GET", "/guide/channels"):
            return httpx.Response(200, json=list(self.channels))
        if (method, path) == ("POST", "/batch"):
            paths = json.loads(request.content)
            return httpx.Response(200, json={p: self.channels[p] for p in paths if p in self.channels})

        if method == "POST" and path.endswith("/watch"):
            channel_id = path.split("/")[3]
            token = f"session-{len(self.sessions) + 1}"
            self.sessions[token] = {
                "token": token,
                "keepalive": 60,
                "playlist_url": f"http://192.168.1.10:8887/stream/{channel_id}/pl.m3u8?session={token}",
            }
            return httpx.Response(200, json=self.sessions[token])

        if path.startswith("/player/sessions/"):
            token = path.split("/")[3]
            if token not in self.sessions:
                return httpx.Response(404)
            if method == "POST" and path.endswith("/keepalive"):
                self.keepalives.append(token)
                return httpx.Response(200, json=self.sessions[token])
            if method == "DELETE":
                self.deleted.append(token)
                del self.sessions[token]
                return httpx.Response(200)

        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_tablo() -> FakeTabloDevice:
    """In-memory device served through httpx.MockTransport."""
    return FakeTabloDevice()


class FFmpegStub:
    """Replacement for ``asyncio.create_subprocess_exec`` that writes the playlist."""

    def __init__(self):
        self.commands: List[List[str]] = []
        self.processes: List[MagicMock] = []

    async def __call__(self, *command, **kwargs):
        self.commands.append(list(command))
        Path(command[-1]).write_text("#EXTM3U\n")

        exited = asyncio.Event()
        proc = MagicMock()
        proc.pid = 4000 + len(self.processes)
        proc.returncode = None

        def finish(code):
            if proc.returncode is None:
                proc.returncode = code
                exited.set()

        async def wait():
            await exited.wait()
            return proc.returncode

        async def drain():
            return None

        proc.stdin.write = MagicMock(side_effect=lambda data: finish(0))
        proc.stdin.drain = drain
        proc.kill = MagicMock(side_effect=lambda: finish(-9))
        proc.wait = wait
        self.processes.append(proc)
        return proc


@pytest.fixture
def ffmpeg_stub():
    """Patch subprocess creation so no FFmpeg binary is needed."""
    stub = FFmpegStub()
    with patch("asyncio.create_subprocess_exec", new=stub):
        yield stub
