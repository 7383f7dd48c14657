"""
Registry of live transcoders.

Guarantees at most one :class:`LiveTranscoder` per (device, channel) pair so
every consumer of a channel shares one watch session and one FFmpeg process.
"""

import asyncio
import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from live_transcoder.config import TranscoderConfig
from live_transcoder.exceptions import DeviceUnavailable
from live_transcoder.metrics import TranscoderMetrics
from live_transcoder.supervisor import LiveTranscoder, SessionClient, TranscoderState

logger = logging.getLogger(__name__)

IDLE_STATES = (TranscoderState.IDLE, TranscoderState.STOPPED)


def fingerprint(server_id: str, channel_id: str) -> str:
    """
    Identify a (device, channel) pair.

    Args:
        server_id: Device server id
        channel_id: Channel identifier

    Returns:
        SHA-256 hex digest of ``{"server_id":...,"channel_id":...}``
    """
    canonical = json.dumps({"server_id": server_id, "channel_id": channel_id}, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class TranscoderRegistry:
    """Owns the live transcoders of an application."""

    def __init__(
        self,
        config: Optional[TranscoderConfig] = None,
        metrics: Optional[TranscoderMetrics] = None,
    ):
        """
        Initialize registry.

        Args:
            config: Transcoder configuration (creates default if not provided)
            metrics: Optional metrics shared by every transcoder
        """
        if config is None:
            from live_transcoder.config import get_config

            config = get_config()

        self.config = config
        self.metrics = metrics
        self._transcoders: Dict[str, LiveTranscoder] = {}
        self._lock = asyncio.Lock()
        self._eviction_task: Optional[asyncio.Task] = None

    async def get_or_create(
        self,
        device: SessionClient,
        channel_id: str,
        output_path: Optional[Union[str, Path]] = None,
        filename: Optional[str] = None,
        auto_restart: Optional[bool] = None,
        device_info: Optional[Dict[str, Any]] = None,
    ) -> LiveTranscoder:
        """
        Get the transcoder for a device channel, creating it if needed.

        Settings of an existing transcoder are kept; the arguments only apply
        when a new one is created.

        Args:
            device: Device client
            channel_id: Channel identifier
            output_path: Output root (config default if omitted)
            filename: Playlist filename (config default if omitted)
            auto_restart: Respawn FFmpeg on exit (config default if omitted)
            device_info: Client profile overrides for watch requests

        Returns:
            LiveTranscoder

        Raises:
            DeviceUnavailable: If the device does not answer its info request
        """
        try:
            info = await device.info()
        except Exception as e:
            raise DeviceUnavailable(f"Device info request failed: {e}") from e

        if info is None:
            raise DeviceUnavailable("Failed to retrieve device information")

        key = fingerprint(info.server_id, channel_id)

        async with self._lock:
            transcoder = self._transcoders.get(key)
            if transcoder is None:
                transcoder = LiveTranscoder(
                    device,
                    channel_id,
                    key,
                    output_path=output_path,
                    filename=filename,
                    auto_restart=auto_restart,
                    config=self.config,
                    metrics=self.metrics,
                    device_info=device_info,
                )
                self._transcoders[key] = transcoder
                logger.info(f"Created transcoder {key[:12]} for {info.server_id} channel {channel_id}")

        return transcoder

    def get(self, key: str) -> Optional[LiveTranscoder]:
        return self._transcoders.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._transcoders

    def __len__(self) -> int:
        return len(self._transcoders)

    def __iter__(self) -> Iterator[LiveTranscoder]:
        return iter(list(self._transcoders.values()))

    async def evict_idle(self, max_idle_seconds: float) -> List[str]:
        """
        Drop transcoders that have been unused for too long.

        Only transcoders without consumers that are idle or stopped qualify.
        Evicted transcoders are closed and refuse further starts, callers
        should look the channel up again with :meth:`get_or_create`.

        Args:
            max_idle_seconds: Idle threshold

        Returns:
            Fingerprints of the evicted transcoders
        """
        async with self._lock:
            evicted = [
                key
                for key, transcoder in self._transcoders.items()
                if transcoder.state in IDLE_STATES
                and transcoder.use_count == 0
                and transcoder.idle_seconds >= max_idle_seconds
            ]
            for key in evicted:
                self._transcoders.pop(key).close()

        if evicted:
            logger.info(f"Evicted {len(evicted)} idle transcoder(s)")
        return evicted

    def start_eviction(self) -> None:
        """Start the background eviction loop when eviction is configured."""
        if self.config.idle_eviction_seconds <= 0:
            logger.debug("Idle eviction disabled")
            return

        if self._eviction_task and not self._eviction_task.done():
            logger.warning("Eviction loop already running")
            return

        self._eviction_task = asyncio.create_task(self._eviction_loop())
        logger.info(
            f"Started eviction loop (idle limit: {self.config.idle_eviction_seconds}s, "
            f"interval: {self.config.eviction_interval}s)"
        )

    async def stop_eviction(self) -> None:
        if self._eviction_task:
            self._eviction_task.cancel()
            try:
                await self._eviction_task
            except asyncio.CancelledError:
                pass
            self._eviction_task = None
            logger.info("Stopped eviction loop")

    async def _eviction_loop(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.config.eviction_interval)
                await self.evict_idle(self.config.idle_eviction_seconds)

            except asyncio.CancelledError:
                break

            except Exception as e:
                logger.error(f"Error in eviction loop: {e}", exc_info=True)

    async def shutdown(self) -> None:
        """Stop the eviction loop and tear down every transcoder."""
        await self.stop_eviction()

        transcoders = list(self._transcoders.values())
        results = await asyncio.gather(
            *(transcoder.shutdown() for transcoder in transcoders),
            return_exceptions=True,
        )
        for transcoder, result in zip(transcoders, results):
            if isinstance(result, Exception):
                logger.error(f"Failed to shut down {transcoder!r}: {result}")

        logger.info(f"Registry shut down ({len(transcoders)} transcoder(s))")
