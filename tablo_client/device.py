"""Tablo device API endpoints.

See https://jessedp.github.io/tablo-api-docs/ for the full list of device
endpoints; only the ones used by this project are wrapped here.

Every method returns ``None``, an empty list or ``False`` when the device
cannot be reached or answers with an error, so callers never have to catch
transport exceptions.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
from pydantic import TypeAdapter, ValidationError

from tablo_client.device_api import TabloAPI
from tablo_client.lighthouse import Lighthouse
from tablo_client.models import (
    AccountSubscription,
    Airing,
    Channel,
    ChannelScan,
    ClientDevice,
    ClientDeviceExtra,
    DeviceInfo,
    DeviceSubscription,
    Episode,
    GuideStatus,
    HardDrive,
    LighthouseDevice,
    Location,
    PlayerSession,
    Settings,
    Tuner,
    UpdateInfo,
)

logger = logging.getLogger(__name__)

AIRING_BATCH_SIZE = 50
DEFAULT_CACHE_TTL = 600.0
DEFAULT_WATCH_TIMEOUT = 30.0
CLIENT_ERRORS = (httpx.HTTPError, ValidationError, ValueError)
_DATETIME = TypeAdapter(datetime)

SessionRef = Union[str, PlayerSession]
ProgressCallback = Callable[[int, int], None]


def _session_token(session: SessionRef) -> str:
    return session if isinstance(session, str) else session.token


class Tablo(TabloAPI):
    """Client for one Tablo device."""

    def __init__(
        self,
        *args,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        watch_timeout: float = DEFAULT_WATCH_TIMEOUT,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.cache_ttl = cache_ttl
        self.watch_timeout = watch_timeout
        self._cache: Dict[str, Tuple[float, Any]] = {}
        self._session_channels: Dict[str, Channel] = {}

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.AsyncBaseTransport] = None) -> "Tablo":
        client = super().from_config(config, transport=transport)
        client.cache_ttl = config.cache_ttl
        client.watch_timeout = config.watch_timeout
        return client

    @staticmethod
    async def discover(
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> List[LighthouseDevice]:
        """Discover devices on the network this request is made from."""
        return await Lighthouse.list_available_devices(timeout, transport=transport)

    def _cache_get(self, key: str) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._cache[key]
            return None
        return value

    def _cache_set(self, key: str, value: Any) -> None:
        self._cache[key] = (time.monotonic() + self.cache_ttl, value)

    async def info(self, timeout: Optional[float] = None) -> Optional[DeviceInfo]:
        """Device information, including the stable ``server_id``."""
        try:
            data = await self.get("/server/info", timeout=timeout)
            return DeviceInfo.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch device info: {e}")
            return None

    async def capabilities(self, timeout: Optional[float] = None) -> List[str]:
        try:
            data = await self.get("/server/capabilities", timeout=timeout)
            return list((data or {}).get("capabilities", []))
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch capabilities: {e}")
            return []

    async def channels(self, timeout: Optional[float] = None) -> List[Channel]:
        """All channels on the device, ordered by channel number."""
        try:
            paths = await self.get("/guide/channels", timeout=timeout) or []
            if not paths:
                return []

            batched = await self.batch(paths, timeout)
            channels = [Channel.model_validate(entry["channel"]) for entry in batched.values()]
            return sorted(channels, key=lambda channel: channel.sort_key)

        except (KeyError, TypeError) + CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch channels: {e}")
            return []

    async def channel(self, channel_id: str, timeout: Optional[float] = None) -> Optional[Channel]:
        for channel in await self.channels(timeout):
            if channel.channel_identifier == channel_id:
                return channel
        return None

    async def channel_scan_info(
        self,
        scan_idx: Optional[Union[int, str]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[ChannelScan]:
        """Information about a channel scan.

        Args:
            scan_idx: Scan index; the committed (latest) scan when omitted
            timeout: Request timeout

        Returns:
            ChannelScan or None
        """
        try:
            if not scan_idx:
                data = await self.get("/channels/info", timeout=timeout)
                committed = (data or {}).get("committed_scan")
                if not committed:
                    return None
                return await self.channel_scan_info(committed.split("/")[3], timeout)

            data = await self.get(f"/channels/scans/{scan_idx}", timeout=timeout)
            return ChannelScan.model_validate(data) if data else None

        except (IndexError,) + CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch channel scan info: {e}")
            return None

    async def airings(
        self,
        all_airings: bool = False,
        timeout: Optional[float] = None,
        force_refresh: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[Airing]:
        """Guide airings, resolved in batches and cached for ``cache_ttl``.

        Resolving the whole guide takes a while; ``progress_callback(total,
        received)`` is called after every batch.

        Args:
            all_airings: Return every airing instead of only those on now
            timeout: Request timeout
            force_refresh: Bypass the cache
            progress_callback: Optional progress reporter

        Returns:
            Airings ordered by channel number
        """

        def progress(total: int, received: int) -> None:
            if progress_callback:
                progress_callback(total, received)

        now, hour_start, _ = self.current_hour()

        try:
            result: List[Airing] = [] if force_refresh else (self._cache_get("airings") or [])

            if not result:
                paths = await self.get("/guide/airings", timeout=timeout) or []
                total = len(paths)
                progress(total, 0)

                for offset in range(0, total, AIRING_BATCH_SIZE):
                    batched = await self.batch(paths[offset:offset + AIRING_BATCH_SIZE], timeout)
                    result.extend(self._parse_airing(entry) for entry in batched.values())
                    progress(total, len(result))

                self._cache_set("airings", result)
            else:
                progress(len(result), len(result))

        except (KeyError, TypeError) + CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch airings: {e}")
            return []

        if not all_airings:
            result = [
                airing
                for airing in result
                if hour_start <= airing.start_time < now and airing.end_time > now
            ]

        return sorted(result, key=lambda airing: airing.channel.sort_key)

    def _parse_airing(self, entry: Dict[str, Any]) -> Airing:
        details = entry["airing_details"]
        start_time = _DATETIME.validate_python(details["datetime"])
        if start_time.tzinfo is None:
            start_time = start_time.replace(tzinfo=timezone.utc)

        return Airing(
            show_title=details.get("show_title"),
            start_time=start_time,
            end_time=self.calculate_endtime(start_time, details.get("duration", 0)),
            duration=details.get("duration", 0),
            episode=Episode.model_validate(entry["episode"]) if entry.get("episode") else None,
            channel=Channel.model_validate(details["channel"]["channel"]),
        )

    async def account_subscription(
        self, timeout: Optional[float] = None
    ) -> Optional[AccountSubscription]:
        try:
            data = await self.get("/account/subscription", timeout=timeout)
            return AccountSubscription.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch account subscription: {e}")
            return None

    async def device_subscription(
        self, timeout: Optional[float] = None
    ) -> Optional[DeviceSubscription]:
        try:
            data = await self.get("/server/subscription", timeout=timeout)
            return DeviceSubscription.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch device subscription: {e}")
            return None

    async def guide_status(self, timeout: Optional[float] = None) -> Optional[GuideStatus]:
        try:
            data = await self.get("/server/guide/status", timeout=timeout)
            return GuideStatus.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch guide status: {e}")
            return None

    async def hard_drives(self, timeout: Optional[float] = None) -> List[HardDrive]:
        try:
            data = await self.get("/server/harddrives", timeout=timeout)
            return [HardDrive.model_validate(drive) for drive in data or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch hard drives: {e}")
            return []

    async def location(self, timeout: Optional[float] = None) -> Optional[Location]:
        try:
            data = await self.get("/server/location", timeout=timeout)
            return Location.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch location: {e}")
            return None

    async def settings(self, timeout: Optional[float] = None) -> Optional[Settings]:
        try:
            data = await self.get("/settings/info", timeout=timeout)
            return Settings.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch settings: {e}")
            return None

    async def storage(self, timeout: Optional[float] = None) -> List[str]:
        """Supported storage kinds."""
        try:
            data = await self.get("/storage/info", timeout=timeout)
            return list((data or {}).get("supported_kinds", []))
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch storage info: {e}")
            return []

    async def tuners(self, timeout: Optional[float] = None) -> List[Tuner]:
        try:
            data = await self.get("/server/tuners", timeout=timeout)
            return [Tuner.model_validate(tuner) for tuner in data or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch tuners: {e}")
            return []

    async def update_info(self, timeout: Optional[float] = None) -> Optional[UpdateInfo]:
        try:
            data = await self.get("/server/update/info", timeout=timeout)
            return UpdateInfo.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch update info: {e}")
            return None

    async def update_progress(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        try:
            return await self.get("/server/update/progress", timeout=timeout)
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch update progress: {e}")
            return None

    # Watch (streaming) sessions

    async def watch_channel(
        self,
        channel_id: str,
        device_info: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[PlayerSession]:
        """Start a watch (streaming) session for a channel.

        The session must be kept alive with :meth:`keepalive_session` and
        released with :meth:`delete_session`.

        Args:
            channel_id: Channel identifier
            device_info: Overrides for the client profile sent to the device
            timeout: Request timeout (defaults to ``watch_timeout``, session creation is slow)

        Returns:
            PlayerSession or None
        """
        try:
            device_info = dict(device_info or {})
            extra = ClientDeviceExtra(**device_info.pop("extra", {}))
            device_info.setdefault("device_id", self.device_id)
            client = ClientDevice(extra=extra, **device_info)
        except (TypeError,) + CLIENT_ERRORS as e:
            logger.warning(f"Invalid client profile for channel {channel_id}: {e}")
            return None

        info = await self.info()
        channel = await self.channel(channel_id)

        if not info or not channel:
            logger.warning(f"Cannot watch channel {channel_id}: device or channel unavailable")
            return None

        try:
            data = await self.post(
                f"/guide/channels/{channel_id}/watch",
                params={"lh": None},
                payload=client.model_dump(),
                timeout=timeout or self.watch_timeout,
            )
            if not data:
                return None

            session = PlayerSession.model_validate({**data, "channel": channel.model_dump()})
            if not session.playlist_url:
                logger.warning(f"Watch session for channel {channel_id} has no playlist URL")
                return None

            self._session_channels[session.token] = channel
            logger.info(f"Watch session {session.token} started for channel {channel_id}")
            return session

        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to start watch session for channel {channel_id}: {e}")
            return None

    async def session(
        self, session: SessionRef, timeout: Optional[float] = None
    ) -> Optional[PlayerSession]:
        """Fetch an existing watch session."""
        token = _session_token(session)
        try:
            data = await self.get(f"/player/sessions/{token}", params={"lh": None}, timeout=timeout)
            return self._with_channel(token, data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch session {token}: {e}")
            return None

    async def keepalive_session(
        self, session: SessionRef, timeout: Optional[float] = None
    ) -> Optional[PlayerSession]:
        """Refresh a watch session so its lease does not run out."""
        token = _session_token(session)
        try:
            data = await self.post(
                f"/player/sessions/{token}/keepalive", params={"lh": None}, timeout=timeout
            )
            return self._with_channel(token, data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Keepalive for session {token} failed: {e}")
            return None

    async def delete_session(self, session: SessionRef, timeout: Optional[float] = None) -> bool:
        """Stop a watch session on the device."""
        token = _session_token(session)
        try:
            success = await self.delete(
                f"/player/sessions/{token}", params={"lh": None}, timeout=timeout
            )
        except httpx.HTTPError as e:
            logger.warning(f"Failed to delete session {token}: {e}")
            return False

        if success:
            self._session_channels.pop(token, None)
        return success

    def _with_channel(self, token: str, data: Dict[str, Any]) -> PlayerSession:
        channel = self._session_channels.get(token)
        payload = {"token": token, **data}
        if channel is not None:
            payload["channel"] = channel.model_dump()
        return PlayerSession.model_validate(payload)
