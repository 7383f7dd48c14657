"""
FFmpeg subprocess wrapper.

Wraps an :mod:`asyncio` subprocess with the operations the supervisor needs:
graceful quit over stdin, forced kill, bounded waits and resource stats.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import psutil

logger = logging.getLogger(__name__)


class TranscodeProcess:
    """Represents a single running FFmpeg process."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        command: List[str],
        log_handle: Optional[Any] = None,
    ):
        """Initialize process wrapper.

        Args:
            process: The asyncio subprocess
            command: Command line it was started with
            log_handle: Open file receiving FFmpeg stderr, if any
        """
        self.process = process
        self.command = command
        self.pid = process.pid
        self.started_at = time.monotonic()
        self.log_handle = log_handle

    @classmethod
    async def spawn(cls, command: List[str], log_file: Optional[Path] = None) -> "TranscodeProcess":
        """
        Start FFmpeg.

        stdin is piped so the process can be asked to quit, stdout is
        discarded and stderr is discarded unless ``log_file`` is given.

        Args:
            command: Executable followed by its arguments
            log_file: Optional file to append FFmpeg stderr to

        Returns:
            TranscodeProcess

        Raises:
            OSError: If the executable cannot be started
        """
        log_handle = open(log_file, "ab") if log_file else None
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=log_handle or asyncio.subprocess.DEVNULL,
            )
        except BaseException:
            if log_handle:
                log_handle.close()
            raise

        logger.info(f"Started FFmpeg process (PID: {process.pid})")
        return cls(process, command, log_handle)

    @property
    def is_running(self) -> bool:
        return self.process.returncode is None

    @property
    def returncode(self) -> Optional[int]:
        return self.process.returncode

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_at

    async def quit(self) -> None:
        """Ask FFmpeg to finish by writing ``q`` to its stdin."""
        if not self.is_running or self.process.stdin is None:
            return

        try:
            self.process.stdin.write(b"q")
            await self.process.stdin.drain()
            logger.debug(f"Sent quit to FFmpeg process {self.pid}")
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(f"FFmpeg process {self.pid} stdin already closed: {e}")

    def kill(self) -> None:
        """Forcefully kill the process (SIGKILL)."""
        if self.is_running:
            logger.warning(f"Sending SIGKILL to FFmpeg process {self.pid}")
            try:
                self.process.kill()
            except ProcessLookupError:
                pass

    async def wait(self, timeout: Optional[float] = None) -> Optional[int]:
        """Wait for the process to exit.

        Args:
            timeout: Maximum time to wait in seconds (None waits forever)

        Returns:
            Exit code, or None on timeout
        """
        try:
            code = await asyncio.wait_for(self.process.wait(), timeout)
        except asyncio.TimeoutError:
            return None

        self.close_log()
        return code

    async def stop(self, timeout: float = 5.0) -> Optional[int]:
        """
        Quit gracefully, killing the process if it does not exit in time.

        Args:
            timeout: Time allowed after the quit request

        Returns:
            Exit code
        """
        await self.quit()
        code = await self.wait(timeout)
        if code is None:
            logger.warning(f"FFmpeg process {self.pid} did not quit within {timeout}s")
            self.kill()
            code = await self.wait()
        return code

    def close_log(self) -> None:
        if self.log_handle:
            try:
                self.log_handle.close()
            except OSError as e:
                logger.debug(f"Failed to close FFmpeg log: {e}")
            self.log_handle = None

    def resource_usage(self) -> Dict[str, float]:
        """CPU and memory usage of the process, empty when unavailable."""
        if not self.is_running:
            return {}

        try:
            proc = psutil.Process(self.pid)
            return {
                "cpu_percent": proc.cpu_percent(interval=None),
                "memory_mb": proc.memory_info().rss / 1024 / 1024,
            }
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.debug(f"Resource stats unavailable for PID {self.pid}: {e}")
            return {}
