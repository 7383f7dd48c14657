"""
FFmpeg command builder for live HLS transcoding.

Builds the command line that pulls a device playlist and re-encodes it into a
local rolling HLS playlist.
"""

import logging
import shutil
from typing import List, Optional

from live_transcoder.config import EncodingConfig, TranscoderConfig

logger = logging.getLogger(__name__)


class HLSCommandBuilder:
    """Builds FFmpeg commands for live HLS output."""

    def __init__(self, config: TranscoderConfig):
        """
        Initialize command builder.

        Args:
            config: Transcoder configuration
        """
        self.config = config
        self.encoding_config: EncodingConfig = config.get_encoding_config()

    def resolve_binary(self) -> str:
        """
        Resolve the FFmpeg executable.

        Returns:
            Absolute path when found on PATH, else the configured value
        """
        return shutil.which(self.config.ffmpeg_binary) or self.config.ffmpeg_binary

    def build_args(self, playlist_url: str, output_playlist: str) -> List[str]:
        """
        Build FFmpeg arguments (without the executable).

        Args:
            playlist_url: Device playlist URL of the watch session
            output_playlist: Absolute path of the HLS playlist to write

        Returns:
            List of arguments
        """
        args = ["-re", "-i", playlist_url]
        args.extend(self._build_video_encoding())
        args.extend(self._build_audio_encoding())
        args.extend(self._build_output_options(output_playlist))

        logger.debug(f"Built FFmpeg arguments: {' '.join(args)}")
        return args

    def build_command(self, playlist_url: str, output_playlist: str) -> List[str]:
        """Build the full command including the executable."""
        return [self.resolve_binary()] + self.build_args(playlist_url, output_playlist)

    def _build_video_encoding(self) -> List[str]:
        enc = self.encoding_config
        return [
            "-c:v", enc.video_codec,
            "-preset", enc.video_preset,
            "-tune", enc.video_tune,
            "-crf", str(enc.crf),
            # Fixed GOP so segments cut on keyframes
            "-g", str(enc.keyframe_interval),
            "-keyint_min", str(enc.keyframe_interval),
            "-sc_threshold", str(enc.scene_change_threshold),
        ]

    def _build_audio_encoding(self) -> List[str]:
        enc = self.encoding_config
        return [
            "-ac", str(enc.audio_channels),
            "-c:a", enc.audio_codec,
            "-b:a", enc.audio_bitrate,
        ]

    def _build_output_options(self, output_playlist: str) -> List[str]:
        enc = self.encoding_config
        return [
            "-f", "hls",
            "-hls_time", str(enc.segment_duration),
            "-hls_list_size", str(enc.playlist_size),
            "-hls_flags", enc.hls_flags,
            output_playlist,
        ]

    def get_command_string(self, playlist_url: str, output_playlist: str) -> str:
        """Get the command as a single string (useful for logging)."""
        return " ".join(self.build_command(playlist_url, output_playlist))


def create_command_builder(config: Optional[TranscoderConfig] = None) -> HLSCommandBuilder:
    """
    Factory function to create a command builder.

    Args:
        config: Optional transcoder configuration (creates default if not provided)

    Returns:
        HLSCommandBuilder instance
    """
    if config is None:
        from live_transcoder.config import get_config
        config = get_config()

    return HLSCommandBuilder(config)
