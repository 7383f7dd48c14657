"""
Periodic watch session keepalive.

Device watch sessions expire unless refreshed. The timer refreshes them a
fixed margin before the lease runs out.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


def compute_keepalive_interval(
    lease_seconds: float,
    margin: float = 30.0,
    minimum: float = 5.0,
) -> float:
    """
    Compute how often a session must be refreshed.

    Args:
        lease_seconds: Session lease reported by the device
        margin: Refresh this long before the lease runs out
        minimum: Lower bound so short leases do not spin

    Returns:
        Interval in seconds
    """
    return max(lease_seconds - margin, minimum)


class KeepaliveTimer:
    """Runs an async callback every ``interval`` seconds until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], Awaitable[None]], name: str = "keepalive"):
        self.interval = interval
        self.callback = callback
        self.name = name
        self.ticks = 0
        self.failures = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.warning(f"{self.name} timer already running")
            return

        self._task = asyncio.create_task(self._run())
        logger.debug(f"{self.name} timer started (every {self.interval:.1f}s)")

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.debug(f"{self.name} timer cancelled")

    async def _run(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.interval)
                self.ticks += 1
                await self.callback()

            except asyncio.CancelledError:
                break

            except Exception as e:
                self.failures += 1
                logger.error(f"{self.name} callback failed: {e}", exc_info=True)
