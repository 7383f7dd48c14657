"""
Pytest configuration and fixtures for live transcoder tests.

FFmpeg is never spawned: ``asyncio.create_subprocess_exec`` is replaced by a
fake that records command lines and optionally writes the output playlist.
"""

import asyncio
import itertools
import tempfile
from pathlib import Path
from typing import Callable, Generator, List, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from prometheus_client import CollectorRegistry

from live_transcoder.config import TranscoderConfig
from live_transcoder.metrics import TranscoderMetrics
from tablo_client.models import DeviceInfo, PlayerSession


class FakeProcess:
    """Stand-in for ``asyncio.subprocess.Process``."""

    def __init__(self, pid: int, quit_exits: bool = True):
        self.pid = pid
        self.returncode: Optional[int] = None
        self.quit_exits = quit_exits
        self.stdin = MagicMock()
        self.stdin.write = MagicMock(side_effect=self._on_write)
        self.stdin.drain = AsyncMock()
        self.kill = MagicMock(side_effect=lambda: self.exit(-9))
        self._exited = asyncio.Event()

    def _on_write(self, data: bytes) -> None:
        if data == b"q" and self.quit_exits:
            self.exit(0)

    def exit(self, code: int) -> None:
        """Simulate the process exiting."""
        if self.returncode is None:
            self.returncode = code
            self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode


class FakeFFmpeg:
    """Replacement for ``asyncio.create_subprocess_exec``."""

    def __init__(self):
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []
        self.processes: List[FakeProcess] = []
        self.write_playlist = True
        self.quit_exits = True
        self.failures = 0

    async def __call__(self, *command, **kwargs) -> FakeProcess:
        self.calls.append(list(command))
        self.kwargs.append(kwargs)

        if self.failures:
            self.failures -= 1
            raise FileNotFoundError(2, "No such file or directory", command[0])

        proc = FakeProcess(1000 + len(self.processes), quit_exits=self.quit_exits)
        self.processes.append(proc)

        if self.write_playlist:
            Path(command[-1]).touch()

        return proc

    @property
    def current(self) -> FakeProcess:
        return self.processes[-1]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary output root."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> TranscoderConfig:
    """Create a test configuration with short timings."""
    return TranscoderConfig(
        output_path=temp_dir,
        playlist_filename="stream.m3u8",
        ffmpeg_binary="ffmpeg",
        auto_restart=True,
        ready_poll_interval=0.01,
        ready_timeout=2.0,
        shutdown_timeout=0.1,
        restart_delay=0.0,
        max_restart_attempts=0,
        keepalive_margin=30.0,
        keepalive_min_interval=5.0,
    )


@pytest.fixture
def metrics() -> TranscoderMetrics:
    """Create metrics on a private registry."""
    return TranscoderMetrics(registry=CollectorRegistry())


@pytest.fixture
def fake_ffmpeg() -> Generator[FakeFFmpeg, None, None]:
    """Patch subprocess creation with a fake FFmpeg."""
    fake = FakeFFmpeg()
    with patch("asyncio.create_subprocess_exec", new=fake):
        yield fake


@pytest.fixture
def make_device() -> Callable[..., MagicMock]:
    """Factory for mock device clients."""

    def factory(server_id: str = "D1", keepalive: int = 60) -> MagicMock:
        tokens = itertools.count(1)

        async def watch_channel(channel_id, device_info=None):
            return PlayerSession(
                token=f"token-{next(tokens)}",
                keepalive=keepalive,
                playlist_url=f"http://device/stream/{channel_id}/pl.m3u8",
            )

        device = MagicMock()
        device.info = AsyncMock(return_value=DeviceInfo(server_id=server_id))
        device.watch_channel = AsyncMock(side_effect=watch_channel)
        device.keepalive_session = AsyncMock(return_value=None)
        device.delete_session = AsyncMock(return_value=True)
        return device

    return factory


@pytest.fixture
def device(make_device) -> MagicMock:
    """Mock device client."""
    return make_device()


@pytest.fixture
def wait_until() -> Callable:
    """Poll until a predicate holds."""

    async def wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() >= deadline:
                raise AssertionError("Condition not met in time")
            await asyncio.sleep(0.005)

    return wait
