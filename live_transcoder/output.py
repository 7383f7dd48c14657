"""Per-transcoder output directory."""

import logging
import shutil
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class OutputDirectory:
    """
    Directory holding one transcoder's playlist and segments.

    Lives at ``{root}/{fingerprint}/``. Filesystem errors are logged and never
    raised, a stale or missing directory must not take the stream down.
    """

    def __init__(self, root: Union[str, Path], fingerprint: str, filename: str = "stream.m3u8"):
        self.root = Path(root)
        self.fingerprint = fingerprint
        self.filename = filename
        self.path = self.root / fingerprint
        self.prepare()

    @property
    def playlist_path(self) -> Path:
        return self.path / self.filename

    @property
    def log_path(self) -> Path:
        return self.path / "ffmpeg.log"

    def playlist_exists(self) -> bool:
        return self.playlist_path.is_file()

    def exists(self) -> bool:
        return self.path.is_dir()

    def prepare(self) -> None:
        """Wipe and recreate the directory."""
        shutil.rmtree(self.path, ignore_errors=True)
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create output directory {self.path}: {e}")

    def remove(self) -> None:
        """Remove the directory and everything in it."""
        shutil.rmtree(self.path, ignore_errors=True)
        if self.path.exists():
            logger.warning(f"Output directory {self.path} could not be fully removed")
        else:
            logger.debug(f"Removed output directory {self.path}")

    def __repr__(self) -> str:
        return f"OutputDirectory({str(self.path)!r})"
