"""Response models for the Tablo device and Lighthouse APIs.

Models accept unknown fields so firmware updates that add keys do not break
parsing. Date strings are parsed into datetimes by pydantic.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TabloModel(BaseModel):
    """Base model for API payloads."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


# Device API


class DeviceModel(TabloModel):
    """Hardware model details of a device."""

    wifi: bool = False
    tuners: int = 0
    type: Optional[str] = None
    name: Optional[str] = None


class DeviceInfo(TabloModel):
    """Response of ``/server/info``."""

    server_id: str = Field(..., description="Stable device identifier")
    name: Optional[str] = None
    timezone: Optional[str] = None
    version: Optional[str] = None
    local_address: Optional[str] = None
    setup_completed: bool = False
    build_number: Optional[int] = None
    model: Optional[DeviceModel] = None
    availability: Optional[str] = None
    cache_key: Optional[str] = None
    product: Optional[str] = None


class Channel(TabloModel):
    """A tunable channel."""

    channel_identifier: str = Field(..., description="Channel identifier used by watch requests")
    call_sign: Optional[str] = None
    name: Optional[str] = None
    call_sign_src: Optional[str] = None
    major: int = 0
    minor: int = 0
    network: Optional[str] = None
    flags: List[str] = Field(default_factory=list)
    resolution: Optional[str] = None
    favourite: bool = False
    tms_station_id: Optional[str] = None
    tms_affiliate_id: Optional[str] = None
    source: Optional[str] = None
    logos: List[Dict[str, Any]] = Field(default_factory=list)

    @property
    def sort_key(self) -> float:
        """Ordering used for channel lists (``major + minor / 10``)."""
        return self.major + self.minor * 0.1


class VideoDetails(TabloModel):
    """Container details of a watch session."""

    container_format: Optional[str] = None
    flags: List[str] = Field(default_factory=list)


class PlayerSession(TabloModel):
    """A remote streaming (watch) session."""

    token: str
    expires: Optional[datetime] = None
    keepalive: int = Field(0, description="Lease duration in seconds")
    playlist_url: Optional[str] = None
    video_details: Optional[VideoDetails] = None
    channel: Optional[Channel] = None


class ClientDeviceExtra(TabloModel):
    """Client profile details sent with watch requests."""

    deviceOS: str = "iOS"
    deviceId: str = "00000000-0000-0000-0000-000000000000"
    width: int = 640
    height: int = 480
    deviceModel: str = "iPhone15,3"
    lang: str = "en_US"
    deviceOSVersion: str = "18.4.1"
    limitedAdTracking: int = 1
    deviceMake: str = "Apple"


class ClientDevice(TabloModel):
    """Client description sent as the body of watch requests."""

    device_id: str
    platform: str = "ios"
    bandwidth: Optional[Any] = None
    extra: ClientDeviceExtra = Field(default_factory=ClientDeviceExtra)


class Tuner(TabloModel):
    """Tuner usage."""

    in_use: bool = False
    channel: Optional[str] = None
    recording: Optional[str] = None
    channel_identifier: Optional[str] = None


class HardDrive(TabloModel):
    """Connected storage device."""

    name: Optional[str] = None
    kind: Optional[str] = None
    connected: bool = False
    format_state: Optional[str] = None
    busy_state: Optional[str] = None
    error: Optional[Any] = None
    size: int = 0
    size_mib: int = 0
    usage: int = 0
    usage_mib: int = 0
    free: int = 0
    free_mib: int = 0
    limit: int = 0
    limit_mib: int = 0


class GuideStatus(TabloModel):
    guide_seeded: bool = False
    last_update: Optional[datetime] = None
    limit: Optional[datetime] = None
    download_progress: Optional[float] = None


class DeviceSubscription(TabloModel):
    state: Optional[str] = None
    expires: Optional[datetime] = None
    url: Optional[str] = None
    identifier: Optional[str] = None


class Subscription(TabloModel):
    kind: Optional[str] = None
    state: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    expires: Optional[datetime] = None
    registration_url: Optional[str] = None
    registration_identifier: Optional[str] = None
    subtitle: Optional[str] = None
    description: Optional[str] = None
    actions: List[Any] = Field(default_factory=list)
    warnings: List[Any] = Field(default_factory=list)


class AccountSubscription(TabloModel):
    state: Optional[str] = None
    services: Dict[str, Any] = Field(default_factory=dict)
    trial: Optional[Any] = None
    offered_option: Optional[Any] = None
    registration: Dict[str, Any] = Field(default_factory=dict)
    subscriptions: List[Subscription] = Field(default_factory=list)


class UpdateInfo(TabloModel):
    state: Optional[str] = None
    details: Optional[Any] = None
    available_update: Optional[Any] = None
    last_checked: Optional[datetime] = None
    last_update: Optional[datetime] = None
    sequence: List[str] = Field(default_factory=list)
    current_step: Optional[Any] = None
    error: Optional[Any] = None


class ChannelScan(TabloModel):
    object_id: Optional[int] = None
    path: Optional[str] = None
    postal_code: Optional[str] = None
    scanned_at: Optional[datetime] = Field(None, alias="datetime")
    completed: bool = False
    progress: float = 0.0
    preferred_audio_track: Optional[str] = None


class Location(TabloModel):
    state: Optional[str] = None
    location: Dict[str, Any] = Field(default_factory=dict)
    timezone: Dict[str, Any] = Field(default_factory=dict)


class Settings(TabloModel):
    led: Optional[str] = None
    extended_live_recordings: bool = False
    auto_delete_recordings: bool = False
    exclude_duplicates: bool = False
    preferred_audio_track: Optional[str] = None
    data_collection: bool = False
    enable_amplifier: bool = False


class Episode(TabloModel):
    title: Optional[str] = None
    description: Optional[str] = None
    number: Optional[int] = None
    season_number: Optional[int] = None
    orig_air_date: Optional[datetime] = None
    tms_id: Optional[str] = None


class Airing(TabloModel):
    """A guide airing flattened from a batched ``/guide/airings`` lookup."""

    show_title: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration: int = 0
    episode: Optional[Episode] = None
    channel: Channel


# Lighthouse API


class LighthouseToken(TabloModel):
    access_token: str
    token_type: str = "Bearer"
    is_verified: bool = False


class LighthouseDevice(TabloModel):
    """A device known to the Lighthouse cloud."""

    server_id: str = Field(..., alias="serverId")
    name: Optional[str] = None
    type: Optional[str] = None
    product: Optional[str] = None
    version: Optional[str] = None
    build_number: Optional[int] = Field(None, alias="buildNumber")
    registration_status: Optional[str] = Field(None, alias="registrationStatus")
    last_seen: Optional[str] = Field(None, alias="lastSeen")
    reachability: Optional[str] = None
    url: Optional[str] = None


class Profile(TabloModel):
    identifier: str
    name: Optional[str] = None
    date_joined: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)


class AccountInfo(TabloModel):
    identifier: str
    is_verified: bool = False
    email: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    postal_code: Optional[str] = Field(None, alias="postalCode")
    dma: Optional[str] = None
    devices: List[LighthouseDevice] = Field(default_factory=list)
    profiles: List[Profile] = Field(default_factory=list)


class OTA(TabloModel):
    major: int = 0
    minor: int = 0
    callsign: Optional[str] = None
    network: Optional[str] = None


class GuideChannel(TabloModel):
    identifier: str
    name: Optional[str] = None
    kind: Optional[str] = None
    logos: List[Dict[str, Any]] = Field(default_factory=list)
    ota: Optional[OTA] = None


class GuideAiring(TabloModel):
    identifier: str
    title: Optional[str] = None
    channel: Dict[str, Any] = Field(default_factory=dict)
    aired_at: Optional[datetime] = Field(None, alias="datetime")
    onnow: Optional[str] = None
    description: Optional[str] = None
    kind: Optional[str] = None
    qualifiers: Optional[Any] = None
    genres: List[str] = Field(default_factory=list)
    images: List[Dict[str, Any]] = Field(default_factory=list)
    duration: int = 0
    show: Dict[str, Any] = Field(default_factory=dict)
    episode: Dict[str, Any] = Field(default_factory=dict)


class LiveAiring(TabloModel):
    channel: GuideChannel
    airing: GuideAiring
