#!/usr/bin/env python3
"""
Watch a live channel from a Tablo device as a local HLS stream.

Connects to the device configured through TABLO_* environment variables (or
the command line), then either lists its channels or starts a live
transcoder for one channel and keeps it running until Ctrl-C.

Usage:
    python scripts/watch_channel.py --discover
    python scripts/watch_channel.py --list-channels
    python scripts/watch_channel.py --channel S102
    python scripts/watch_channel.py --host 192.168.1.10 --channel S102 --output /srv/hls
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from live_transcoder import TranscoderEvent, TranscoderRegistry, get_config as get_transcoder_config
from live_transcoder.exceptions import DeviceUnavailable
from logging_module import LoggingConfig, setup_logging
from tablo_client.config import get_config as get_tablo_config
from tablo_client.device import Tablo

logger = logging.getLogger("watch_channel")


async def discover() -> int:
    """Print devices Lighthouse reports for this network."""
    devices = await Tablo.discover()
    if not devices:
        print("No devices found")
        return 1

    for device in devices:
        print(f"{device.server_id}  {device.name or '-'}  {device.url or '-'}")
    return 0


async def list_channels(device: Tablo) -> int:
    """Print the device channel lineup."""
    channels = await device.channels()
    if not channels:
        print("No channels available", file=sys.stderr)
        return 1

    for channel in channels:
        print(
            f"{channel.channel_identifier:<12} {channel.major}.{channel.minor:<4} "
            f"{channel.call_sign or '':<8} {channel.network or ''}"
        )
    return 0


async def watch(device: Tablo, channel_id: str, output: Optional[str]) -> int:
    """Start a live transcoder and keep it running until interrupted."""
    registry = TranscoderRegistry(config=get_transcoder_config())
    stopped = asyncio.Event()

    try:
        transcoder = await registry.get_or_create(device, channel_id, output_path=output)
    except DeviceUnavailable as e:
        print(f"Device unavailable: {e}", file=sys.stderr)
        return 1

    transcoder.on(TranscoderEvent.ERROR, lambda error: logger.error(f"Transcoder error: {error}"))
    transcoder.on(TranscoderEvent.STOPPED, stopped.set)

    try:
        if not await transcoder.start():
            print(f"Failed to start channel {channel_id}", file=sys.stderr)
            return 1

        print(f"Playlist ready: {transcoder.playlist_path}")
        print("Press Ctrl-C to stop")
        await stopped.wait()
        print("Transcoder stopped", file=sys.stderr)
        return 1

    finally:
        await registry.shutdown()


async def run(args: argparse.Namespace) -> int:
    if args.discover:
        return await discover()

    config = get_tablo_config()
    if args.host:
        config.host = args.host

    device = Tablo.from_config(config)

    if args.list_channels:
        return await list_channels(device)

    return await watch(device, args.channel, args.output)


def main():
    """Main entry point for the channel watcher."""
    parser = argparse.ArgumentParser(
        description="Watch a Tablo live channel as a local HLS stream",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Find devices on this network
  python scripts/watch_channel.py --discover

  # List channels of the configured device
  TABLO_HOST=192.168.1.10 python scripts/watch_channel.py --list-channels

  # Transcode a channel into /srv/hls
  python scripts/watch_channel.py --channel S102 --output /srv/hls
        """,
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--discover", action="store_true", help="List devices found through Lighthouse")
    mode.add_argument("--list-channels", action="store_true", help="List device channels")
    mode.add_argument("--channel", help="Channel identifier to watch")

    parser.add_argument("--host", help="Device host or base URI (overrides TABLO_HOST)")
    parser.add_argument("--output", help="HLS output root (overrides TRANSCODER_OUTPUT_PATH)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

    args = parser.parse_args()

    setup_logging(LoggingConfig(log_level=args.log_level.upper()))

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        print("\nStopped")
        sys.exit(0)


if __name__ == "__main__":
    main()
