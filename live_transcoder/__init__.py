"""
Live transcoder.

Supervises FFmpeg processes that turn Tablo device live streams into locally
served HLS playlists, shared between consumers of the same channel.
"""

from live_transcoder.config import HLS_LIVE_ENCODING, EncodingConfig, TranscoderConfig, get_config
from live_transcoder.events import EventDispatcher, TranscoderEvent, TranscoderListener
from live_transcoder.exceptions import (
    DeviceUnavailable,
    ProcessExited,
    ProcessSpawnFailure,
    SessionUnavailable,
    TranscoderError,
    TranscoderTimeout,
)
from live_transcoder.registry import TranscoderRegistry, fingerprint
from live_transcoder.supervisor import LiveTranscoder, SessionClient, TranscoderState

__version__ = "1.0.0"

__all__ = [
    "HLS_LIVE_ENCODING",
    "DeviceUnavailable",
    "EncodingConfig",
    "EventDispatcher",
    "LiveTranscoder",
    "ProcessExited",
    "ProcessSpawnFailure",
    "SessionClient",
    "SessionUnavailable",
    "TranscoderConfig",
    "TranscoderError",
    "TranscoderEvent",
    "TranscoderListener",
    "TranscoderRegistry",
    "TranscoderState",
    "TranscoderTimeout",
    "fingerprint",
    "get_config",
]
