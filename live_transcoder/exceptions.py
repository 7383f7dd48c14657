"""Errors reported by the live transcoder."""

from typing import Optional


class TranscoderError(Exception):
    """Base class for live transcoder errors."""


class DeviceUnavailable(TranscoderError):
    """The device did not answer its info request."""


class SessionUnavailable(TranscoderError):
    """The device refused or failed to open a watch session."""

    def __init__(self, channel_id: str, message: Optional[str] = None):
        self.channel_id = channel_id
        super().__init__(message or f"Failed to start watch session for channel {channel_id}")


class ProcessSpawnFailure(TranscoderError):
    """FFmpeg could not be started."""

    def __init__(self, binary: str, cause: Optional[BaseException] = None):
        self.binary = binary
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to spawn {binary}{detail}")


class TranscoderTimeout(TranscoderError):
    """The playlist did not appear within the readiness timeout."""

    def __init__(self, playlist_path: str, timeout: float):
        self.playlist_path = playlist_path
        self.timeout = timeout
        super().__init__(f"Playlist {playlist_path} not written within {timeout:.1f}s")


class ProcessExited(TranscoderError):
    """FFmpeg exited and will not be restarted."""

    def __init__(self, exit_code: Optional[int], message: Optional[str] = None):
        self.exit_code = exit_code
        super().__init__(message or f"FFmpeg exited with code {exit_code}")
