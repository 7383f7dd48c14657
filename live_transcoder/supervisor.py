"""
Live transcoder supervisor.

Turns a device live stream into a local HLS playlist by supervising one FFmpeg
process per (device, channel). The supervisor is shared by every consumer of
the stream: each ``start()`` adds a consumer, each ``stop()`` removes one and
the last one out tears the stream down.

Lifecycle:
    IDLE -> STARTING -> ACTIVE -> STOPPING -> STOPPED

STOPPED may be started again; a new cycle requests a new watch session.
"""

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Union

from live_transcoder.command_builder import HLSCommandBuilder
from live_transcoder.config import TranscoderConfig
from live_transcoder.events import EventDispatcher, TranscoderEvent, TranscoderListener
from live_transcoder.exceptions import (
    ProcessExited,
    ProcessSpawnFailure,
    SessionUnavailable,
    TranscoderTimeout,
)
from live_transcoder.keepalive import KeepaliveTimer, compute_keepalive_interval
from live_transcoder.metrics import TranscoderMetrics
from live_transcoder.output import OutputDirectory
from live_transcoder.process import TranscodeProcess
from tablo_client.models import Channel, DeviceInfo, PlayerSession

logger = logging.getLogger(__name__)


class SessionClient(Protocol):
    """Device operations the supervisor relies on.

    Failures are reported as ``None``/``False`` rather than raised.
    """

    async def info(self) -> Optional[DeviceInfo]:
        ...

    async def channel(self, channel_id: str) -> Optional[Channel]:
        ...

    async def watch_channel(
        self, channel_id: str, device_info: Optional[Dict[str, Any]] = None
    ) -> Optional[PlayerSession]:
        ...

    async def keepalive_session(self, session: PlayerSession) -> Optional[PlayerSession]:
        ...

    async def delete_session(self, session: PlayerSession) -> bool:
        ...


class TranscoderState(str, Enum):
    """Supervisor states."""

    IDLE = "idle"
    STARTING = "starting"
    ACTIVE = "active"
    STOPPING = "stopping"
    STOPPED = "stopped"


RUNNING_STATES = (TranscoderState.STARTING, TranscoderState.ACTIVE)


class LiveTranscoder:
    """
    Reference-counted supervisor of one live FFmpeg transcode.

    Features:
    - One watch session and one FFmpeg process shared by all consumers
    - Session keepalive for as long as the stream runs
    - Readiness detection by polling for the first playlist write
    - Respawn on FFmpeg exit against the same session
    - Deterministic teardown of process, session and output directory
    """

    def __init__(
        self,
        device: SessionClient,
        channel_id: str,
        fingerprint: str,
        output_path: Optional[Union[str, Path]] = None,
        filename: Optional[str] = None,
        auto_restart: Optional[bool] = None,
        config: Optional[TranscoderConfig] = None,
        metrics: Optional[TranscoderMetrics] = None,
        device_info: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the supervisor.

        The output directory is wiped and recreated immediately.

        Args:
            device: Device client used for watch sessions
            channel_id: Channel to transcode
            fingerprint: Stable identifier of the (device, channel) pair
            output_path: Root directory for output (config default if omitted)
            filename: Playlist filename (config default if omitted)
            auto_restart: Respawn FFmpeg when it exits (config default if omitted)
            config: Transcoder configuration (creates default if not provided)
            metrics: Optional Prometheus metrics
            device_info: Client profile overrides sent with the watch request
        """
        if config is None:
            from live_transcoder.config import get_config

            config = get_config()

        self.config = config
        self.device = device
        self.channel_id = channel_id
        self.fingerprint = fingerprint
        self.auto_restart = config.auto_restart if auto_restart is None else auto_restart
        self.metrics = metrics
        self.device_info = device_info

        self.output = OutputDirectory(
            output_path or config.output_path,
            fingerprint,
            filename or config.playlist_filename,
        )
        self.command_builder = HLSCommandBuilder(config)
        self.events = EventDispatcher()

        self.state = TranscoderState.IDLE
        self.use_count = 0
        self.restart_count = 0
        self.session: Optional[PlayerSession] = None
        self.process: Optional[TranscodeProcess] = None
        self.keepalive: Optional[KeepaliveTimer] = None
        self.last_used = time.monotonic()
        self.closed = False

        self._lock = asyncio.Lock()
        self._cycle = 0
        self._args: List[str] = []
        self._activation: Optional[asyncio.Future] = None
        self._teardown: Optional[asyncio.Future] = None
        self._tasks: Set[asyncio.Task] = set()

    # Properties

    @property
    def active(self) -> bool:
        return self.state == TranscoderState.ACTIVE

    @property
    def playlist_path(self) -> Path:
        return self.output.playlist_path

    @property
    def relative_path(self) -> str:
        """Playlist path relative to the output root, e.g. for URL routing."""
        return f"{self.fingerprint}/{self.output.filename}"

    @property
    def channel(self) -> Optional[Channel]:
        return self.session.channel if self.session else None

    @property
    def idle_seconds(self) -> float:
        """How long the supervisor has been unused, 0 while it runs or has consumers."""
        if self.state in RUNNING_STATES or self.state == TranscoderState.STOPPING:
            return 0.0
        if self.use_count > 0:
            return 0.0
        return time.monotonic() - self.last_used

    # Notifications

    def add_listener(self, listener: TranscoderListener) -> None:
        self.events.add_listener(listener)

    def remove_listener(self, listener: TranscoderListener) -> None:
        self.events.remove_listener(listener)

    def on(self, event: TranscoderEvent, callback: Callable[..., Any]) -> None:
        self.events.on(event, callback)

    def off(self, event: TranscoderEvent, callback: Callable[..., Any]) -> None:
        self.events.off(event, callback)

    # Consumer API

    async def start(self) -> bool:
        """
        Add a consumer and make sure the stream is running.

        Joining an active stream emits ``ready`` right away. Joining a stream
        that is still starting waits for it. Otherwise a watch session is
        requested, FFmpeg is spawned and ``ready`` is emitted once the first
        playlist write is seen.

        Returns:
            True when the playlist is being written, False on failure or
            once the supervisor has been closed
        """
        while True:
            async with self._lock:
                if self.closed:
                    logger.warning(f"Stream {self.fingerprint[:12]} was evicted, start refused")
                    return False

                self.last_used = time.monotonic()

                if self.state == TranscoderState.STOPPING:
                    teardown = self._teardown
                else:
                    teardown = None
                    self._add_consumer()

                    if self.state == TranscoderState.ACTIVE:
                        mode = "active"
                    elif self.state == TranscoderState.STARTING:
                        mode = "starting"
                        activation = self._activation
                    else:
                        mode = "activate"
                        self._cycle += 1
                        cycle = self._cycle
                        self.state = TranscoderState.STARTING
                        self._activation = asyncio.get_running_loop().create_future()
                        self.restart_count = 0

            if teardown is None:
                break

            # Previous cycle is still tearing down
            await asyncio.shield(teardown)

        if mode == "active":
            logger.info(f"Consumer joined active stream {self.fingerprint[:12]} ({self.use_count})")
            await self.events.emit(TranscoderEvent.READY)
            return True

        if mode == "starting":
            logger.info(f"Consumer joined starting stream {self.fingerprint[:12]} ({self.use_count})")
            if await asyncio.shield(activation):
                await self.events.emit(TranscoderEvent.READY)
                return True
            return False

        started_at = time.monotonic()
        if not await self._activate(cycle):
            return False
        return await self._wait_until_ready(cycle, started_at)

    async def stop(self) -> None:
        """
        Remove a consumer.

        The last consumer out tears the stream down, including a stream that
        is still starting.
        """
        async with self._lock:
            self.last_used = time.monotonic()

            if self.use_count > 0:
                self.use_count -= 1
                if self.metrics:
                    self.metrics.consumers_removed(1)

            should_abort = self.use_count <= 0 and self.state in RUNNING_STATES

        if should_abort:
            logger.info(f"Last consumer left stream {self.fingerprint[:12]}, stopping")
            await self._abort()

    async def shutdown(self) -> None:
        """Tear the stream down regardless of remaining consumers."""
        async with self._lock:
            should_abort = self.state in RUNNING_STATES

        if should_abort:
            logger.info(f"Shutting down stream {self.fingerprint[:12]} ({self.use_count} consumers)")
            await self._abort()

    def close(self) -> None:
        """
        Retire an idle supervisor for good.

        The output directory is removed, listeners are dropped and every later
        ``start()`` returns False. Used by the registry when evicting, so a
        stale reference cannot write into a directory a newer supervisor owns.
        """
        self.closed = True
        self.output.remove()
        self.events.clear()

    # Activation

    async def _activate(self, cycle: int) -> bool:
        self.output.prepare()

        try:
            session = await self.device.watch_channel(self.channel_id, self.device_info)
        except Exception as e:
            logger.error(f"Watch request for channel {self.channel_id} failed: {e}", exc_info=True)
            session = None

        if not self._alive(cycle):
            # Stopped while the session was being requested
            if session is not None:
                await self._delete_session(session)
            return False

        if session is None or not session.playlist_url:
            logger.error(f"Failed to start watch session for channel {self.channel_id}")
            self.state = TranscoderState.IDLE
            self._reset_consumers()
            self._resolve_activation(False)
            if self.metrics:
                self.metrics.record_session_failure()
            await self._report_error(SessionUnavailable(self.channel_id))
            return False

        self.session = session
        if self.metrics:
            self.metrics.record_session_started()
        logger.info(f"Watch session {session.token} started for channel {self.channel_id}")

        interval = compute_keepalive_interval(
            session.keepalive,
            margin=self.config.keepalive_margin,
            minimum=self.config.keepalive_min_interval,
        )
        self.keepalive = KeepaliveTimer(
            interval, self._keepalive, name=f"keepalive[{self.fingerprint[:12]}]"
        )
        self.keepalive.start()

        self._args = self.command_builder.build_args(
            session.playlist_url, str(self.output.playlist_path)
        )

        if not await self._spawn(cycle):
            if not self._alive(cycle):
                return False

            if not self.auto_restart:
                await self._abort()
                return False

            # Respawn in the background, the readiness deadline still applies
            self._track(asyncio.create_task(self._restart(cycle, None)))

        return True

    async def _wait_until_ready(self, cycle: int, started_at: float) -> bool:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.ready_timeout

        while True:
            if not self._alive(cycle):
                return False

            if self.output.playlist_exists():
                break

            if loop.time() >= deadline:
                logger.error(
                    f"Playlist for channel {self.channel_id} not written "
                    f"within {self.config.ready_timeout}s"
                )
                await self._report_error(
                    TranscoderTimeout(str(self.output.playlist_path), self.config.ready_timeout)
                )
                if self._alive(cycle):
                    await self._abort()
                return False

            await asyncio.sleep(self.config.ready_poll_interval)

        self.state = TranscoderState.ACTIVE
        self._resolve_activation(True)

        elapsed = time.monotonic() - started_at
        if self.metrics:
            self.metrics.transcoder_activated()
            self.metrics.record_time_to_ready(elapsed)

        logger.info(f"Stream {self.fingerprint[:12]} ready after {elapsed:.2f}s: {self.playlist_path}")
        await self.events.emit(TranscoderEvent.READY)
        return True

    # Process supervision

    async def _spawn(self, cycle: int) -> bool:
        command = [self.command_builder.resolve_binary()] + self._args
        log_file = self.output.log_path if self.config.log_ffmpeg_output else None

        try:
            proc = await TranscodeProcess.spawn(command, log_file=log_file)
        except OSError as e:
            logger.error(f"Failed to spawn FFmpeg for channel {self.channel_id}: {e}")
            await self._report_error(ProcessSpawnFailure(command[0], e))
            return False

        if not self._alive(cycle):
            await proc.stop(self.config.shutdown_timeout)
            return False

        self.process = proc
        if self.metrics:
            self.metrics.record_ffmpeg_spawn()

        self._track(asyncio.create_task(self._watch(proc, cycle)))
        return True

    async def _watch(self, proc: TranscodeProcess, cycle: int) -> None:
        try:
            code = await proc.wait()

            # Aborted or replaced, the abort path reports the exit
            if self.process is not proc:
                return

            self.process = None
            logger.warning(f"FFmpeg process {proc.pid} exited with code {code}")
            await self.events.emit(TranscoderEvent.EXIT, code)

            if not self._alive(cycle):
                return

            if not self.auto_restart:
                await self._report_error(ProcessExited(code))
                if self._alive(cycle):
                    await self._abort()
                return

            await self._restart(cycle, code)

        except asyncio.CancelledError:
            raise

        except Exception as e:
            logger.error(f"Error supervising FFmpeg process {proc.pid}: {e}", exc_info=True)

    async def _restart(self, cycle: int, code: Optional[int]) -> None:
        while self._alive(cycle):
            limit = self.config.max_restart_attempts
            if limit and self.restart_count >= limit:
                logger.error(f"Max restart attempts ({limit}) reached for channel {self.channel_id}")
                reason = f"FFmpeg exited with code {code}" if code is not None else "FFmpeg could not be started"
                await self._report_error(ProcessExited(code, f"{reason}, restart limit {limit} reached"))
                if self._alive(cycle):
                    await self._abort()
                return

            self.restart_count += 1
            if self.metrics:
                self.metrics.record_ffmpeg_restart()

            logger.info(f"Restarting FFmpeg for channel {self.channel_id} (attempt {self.restart_count})")
            await asyncio.sleep(self.config.restart_delay)

            if not self._alive(cycle):
                return

            if await self._spawn(cycle):
                return

    async def _keepalive(self) -> None:
        session = self.session
        if session is None:
            return

        refreshed = await self.device.keepalive_session(session)

        if refreshed is None:
            logger.warning(f"Keepalive for session {session.token} failed")
            if self.metrics:
                self.metrics.record_keepalive_failure()
            return

        if self.session is not session:
            return

        if refreshed.playlist_url:
            self.session = refreshed
        else:
            self.session = session.model_copy(
                update={
                    "expires": refreshed.expires or session.expires,
                    "keepalive": refreshed.keepalive or session.keepalive,
                }
            )
        logger.debug(f"Session {session.token} kept alive")

    # Teardown

    async def _abort(self) -> None:
        if self.state not in RUNNING_STATES:
            return

        was_active = self.state == TranscoderState.ACTIVE
        self.state = TranscoderState.STOPPING
        self._cycle += 1
        self._teardown = asyncio.get_running_loop().create_future()
        self._resolve_activation(False)

        if self.keepalive is not None:
            self.keepalive.cancel()
            self.keepalive = None

        proc, self.process = self.process, None
        session, self.session = self.session, None

        try:
            if proc is not None:
                code = await proc.stop(self.config.shutdown_timeout)
                logger.info(f"FFmpeg process {proc.pid} stopped with code {code}")
                await self.events.emit(TranscoderEvent.EXIT, code)

            if session is not None:
                await self._delete_session(session)

        finally:
            if was_active and self.metrics:
                self.metrics.transcoder_deactivated()
            self._reset_consumers()
            await self._cleanup()

    async def _cleanup(self) -> None:
        self.output.remove()
        self.state = TranscoderState.STOPPED
        self.last_used = time.monotonic()

        teardown, self._teardown = self._teardown, None
        if teardown is not None and not teardown.done():
            teardown.set_result(None)

        logger.info(f"Stream {self.fingerprint[:12]} stopped")
        await self.events.emit(TranscoderEvent.STOPPED)

    async def _delete_session(self, session: PlayerSession) -> None:
        try:
            if not await self.device.delete_session(session):
                logger.warning(f"Device did not confirm deletion of session {session.token}")
        except Exception as e:
            logger.error(f"Failed to delete session {session.token}: {e}", exc_info=True)

    # Helpers

    def _alive(self, cycle: int) -> bool:
        return self._cycle == cycle and self.state in RUNNING_STATES

    def _add_consumer(self) -> None:
        self.use_count += 1
        if self.metrics:
            self.metrics.consumer_added()

    def _reset_consumers(self) -> None:
        if self.metrics:
            self.metrics.consumers_removed(self.use_count)
        self.use_count = 0

    def _resolve_activation(self, result: bool) -> None:
        if self._activation is not None and not self._activation.done():
            self._activation.set_result(result)

    async def _report_error(self, error: Exception) -> None:
        if self.metrics:
            self.metrics.record_error(error)
        await self.events.emit(TranscoderEvent.ERROR, error)

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def get_status(self) -> Dict[str, Any]:
        """
        Get current status of the supervisor.

        Returns:
            Dictionary with state, consumer and process information
        """
        status: Dict[str, Any] = {
            "fingerprint": self.fingerprint,
            "channel_id": self.channel_id,
            "state": self.state.value,
            "use_count": self.use_count,
            "restart_count": self.restart_count,
            "playlist_path": str(self.playlist_path),
            "session_token": self.session.token if self.session else None,
            "pid": None,
            "uptime_seconds": 0,
        }

        if self.process is not None:
            status["pid"] = self.process.pid
            status["uptime_seconds"] = self.process.uptime_seconds
            status.update(self.process.resource_usage())

        return status

    def __repr__(self) -> str:
        return (
            f"LiveTranscoder(channel_id={self.channel_id!r}, state={self.state.value}, "
            f"use_count={self.use_count})"
        )
