"""
Tests for the FFmpeg process wrapper.
"""

from unittest.mock import MagicMock, patch

import psutil
import pytest

from live_transcoder.process import TranscodeProcess

COMMAND = ["ffmpeg", "-re", "-i", "http://device/pl.m3u8", "out.m3u8"]


class TestTranscodeProcess:
    """Test process wrapper."""

    @pytest.mark.asyncio
    async def test_spawn(self, fake_ffmpeg, temp_dir):
        """Test spawning passes the command through."""
        fake_ffmpeg.write_playlist = False

        proc = await TranscodeProcess.spawn(COMMAND)

        assert fake_ffmpeg.calls == [COMMAND]
        assert proc.pid == fake_ffmpeg.current.pid
        assert proc.is_running
        assert proc.returncode is None
        assert proc.uptime_seconds >= 0

    @pytest.mark.asyncio
    async def test_spawn_with_log_file(self, fake_ffmpeg, temp_dir):
        """Test stderr goes to the log file when requested."""
        fake_ffmpeg.write_playlist = False
        log_file = temp_dir / "ffmpeg.log"

        proc = await TranscodeProcess.spawn(COMMAND, log_file=log_file)

        assert log_file.exists()
        assert fake_ffmpeg.kwargs[0]["stderr"] is proc.log_handle

        fake_ffmpeg.current.exit(0)
        await proc.wait()
        assert proc.log_handle is None

    @pytest.mark.asyncio
    async def test_spawn_failure_raises(self, fake_ffmpeg):
        """Test spawn errors propagate as OSError."""
        fake_ffmpeg.failures = 1

        with pytest.raises(OSError):
            await TranscodeProcess.spawn(COMMAND)

    @pytest.mark.asyncio
    async def test_quit_writes_q(self, fake_ffmpeg):
        """Test graceful quit over stdin."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)

        await proc.quit()

        fake_ffmpeg.current.stdin.write.assert_called_once_with(b"q")
        fake_ffmpeg.current.stdin.drain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_quit_broken_pipe(self, fake_ffmpeg):
        """Test quitting a process whose stdin is closed."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)
        fake_ffmpeg.current.stdin.drain.side_effect = BrokenPipeError()

        await proc.quit()

    @pytest.mark.asyncio
    async def test_wait_timeout(self, fake_ffmpeg):
        """Test waiting returns None on timeout."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)

        assert await proc.wait(timeout=0.01) is None

    @pytest.mark.asyncio
    async def test_stop_graceful(self, fake_ffmpeg):
        """Test stop returns the exit code of a graceful quit."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)

        assert await proc.stop(timeout=0.1) == 0
        fake_ffmpeg.current.kill.assert_not_called()
        assert not proc.is_running

    @pytest.mark.asyncio
    async def test_stop_kills_after_timeout(self, fake_ffmpeg):
        """Test stop kills a process that ignores the quit request."""
        fake_ffmpeg.write_playlist = False
        fake_ffmpeg.quit_exits = False
        proc = await TranscodeProcess.spawn(COMMAND)

        assert await proc.stop(timeout=0.01) == -9
        fake_ffmpeg.current.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_kill_exited_process(self, fake_ffmpeg):
        """Test killing an exited process is a no-op."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)
        fake_ffmpeg.current.exit(1)

        proc.kill()

        fake_ffmpeg.current.kill.assert_not_called()

    @pytest.mark.asyncio
    async def test_resource_usage(self, fake_ffmpeg):
        """Test CPU and memory are read with psutil."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)

        mock_process = MagicMock()
        mock_process.cpu_percent.return_value = 42.0
        mock_process.memory_info.return_value = MagicMock(rss=100 * 1024 * 1024)

        with patch("psutil.Process", return_value=mock_process):
            usage = proc.resource_usage()

        assert usage == {"cpu_percent": 42.0, "memory_mb": 100.0}

    @pytest.mark.asyncio
    async def test_resource_usage_missing_process(self, fake_ffmpeg):
        """Test stats of a vanished process are empty."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)

        with patch("psutil.Process", side_effect=psutil.NoSuchProcess(proc.pid)):
            assert proc.resource_usage() == {}

    @pytest.mark.asyncio
    async def test_resource_usage_after_exit(self, fake_ffmpeg):
        """Test exited processes report no stats."""
        fake_ffmpeg.write_playlist = False
        proc = await TranscodeProcess.spawn(COMMAND)
        fake_ffmpeg.current.exit(0)

        assert proc.resource_usage() == {}
