"""
Live transcoder configuration and encoding parameters.

The encoder parameters are fixed: a latency-tuned H.264 re-encode with AAC
stereo audio, written as a rolling HLS playlist.
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class EncodingConfig:
    """Encoder and HLS muxer parameters passed to FFmpeg."""

    video_codec: str  # "libx264"
    video_preset: str  # "veryfast"
    video_tune: str  # "zerolatency"
    crf: int  # constant rate factor
    keyframe_interval: int  # GOP size, also used as keyint_min
    scene_change_threshold: int  # 0 disables scene-cut keyframes
    audio_channels: int  # 2 = stereo
    audio_codec: str  # "aac"
    audio_bitrate: str  # e.g., "128k"
    segment_duration: int  # hls_time, seconds
    playlist_size: int  # hls_list_size, segments kept in the playlist
    hls_flags: str  # "delete_segments+program_date_time+append_list"


HLS_LIVE_ENCODING = EncodingConfig(
    video_codec="libx264",
    video_preset="veryfast",
    video_tune="zerolatency",
    crf=23,
    keyframe_interval=48,
    scene_change_threshold=0,
    audio_channels=2,
    audio_codec="aac",
    audio_bitrate="128k",
    segment_duration=4,
    playlist_size=6,
    hls_flags="delete_segments+program_date_time+append_list",
)


class TranscoderConfig(BaseSettings):
    """Live transcoder configuration from environment variables."""

    # Output
    output_path: Path = Field(
        default=Path(tempfile.gettempdir()) / "tablo-live",
        description="Root directory for per-transcoder output directories",
    )

    playlist_filename: str = Field(
        default="stream.m3u8",
        description="Playlist filename written inside each output directory",
    )

    # FFmpeg binary
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        description="FFmpeg executable name or path",
    )

    log_ffmpeg_output: bool = Field(
        default=False,
        description="Write FFmpeg stderr to ffmpeg.log inside the output directory",
    )

    # Process management
    auto_restart: bool = Field(
        default=True,
        description="Respawn FFmpeg when it exits while the stream is still wanted",
    )

    restart_delay: float = Field(
        default=0.0,
        description="Delay before respawning FFmpeg (seconds)",
        ge=0.0,
        le=60.0,
    )

    max_restart_attempts: int = Field(
        default=0,
        description="Maximum respawns per activation (0 = unlimited)",
        ge=0,
        le=1000,
    )

    shutdown_timeout: float = Field(
        default=5.0,
        description="Time allowed for FFmpeg to quit after 'q' before it is killed (seconds)",
        ge=0.0,
        le=60.0,
    )

    # Readiness
    ready_poll_interval: float = Field(
        default=0.1,
        description="Interval between playlist existence checks (seconds)",
        gt=0.0,
        le=5.0,
    )

    ready_timeout: float = Field(
        default=30.0,
        description="Give up waiting for the first playlist write after this long (seconds)",
        gt=0.0,
        le=600.0,
    )

    # Session keepalive
    keepalive_margin: float = Field(
        default=30.0,
        description="Refresh the session this long before its lease runs out (seconds)",
        ge=0.0,
    )

    keepalive_min_interval: float = Field(
        default=5.0,
        description="Lower bound for the keepalive interval (seconds)",
        gt=0.0,
    )

    # Registry
    idle_eviction_seconds: float = Field(
        default=0.0,
        description="Evict transcoders idle for this long (0 = never evict)",
        ge=0.0,
    )

    eviction_interval: float = Field(
        default=60.0,
        description="How often the registry looks for idle transcoders (seconds)",
        gt=0.0,
    )

    model_config = SettingsConfigDict(
        env_prefix="TRANSCODER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get_encoding_config(self) -> EncodingConfig:
        """Get the encoder parameters."""
        return HLS_LIVE_ENCODING


def get_config() -> TranscoderConfig:
    """
    Get live transcoder configuration from environment variables.

    Returns:
        TranscoderConfig: Configuration instance
    """
    return TranscoderConfig()
