"""Configuration for application logging.

Settings are loaded from environment variables and validated before the
handlers are installed.
"""

import os
from dataclasses import dataclass

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class LoggingConfig:
    """Configuration for console and file logging.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_path: Directory for log files; empty disables file logging
        log_file_name: Name of the rotating log file
        log_file_max_bytes: Maximum size of log file before rotation
        log_file_backup_count: Number of backup log files to keep
        json_console: Emit JSON records on the console instead of plain text
        quiet_http: Raise the httpx/httpcore loggers to WARNING
    """

    log_level: str = "INFO"
    log_path: str = ""
    log_file_name: str = "tablo-live.log"
    log_file_max_bytes: int = 10 * 1024 * 1024  # 10 MB
    log_file_backup_count: int = 5
    json_console: bool = False
    quiet_http: bool = True

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        """Create configuration from environment variables.

        Environment variables:
            LOG_LEVEL: Logging level (default: INFO)
            LOG_PATH: Log file directory (default: unset, console only)
            LOG_FILE_NAME: Log file name (default: tablo-live.log)
            LOG_FILE_MAX_BYTES: Max log file size (default: 10MB)
            LOG_FILE_BACKUP_COUNT: Number of backup files (default: 5)
            LOG_JSON: JSON console output (default: false)
            LOG_QUIET_HTTP: Silence per-request httpx logs (default: true)

        Returns:
            LoggingConfig instance with values from environment
        """
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_path=os.getenv("LOG_PATH", ""),
            log_file_name=os.getenv("LOG_FILE_NAME", "tablo-live.log"),
            log_file_max_bytes=int(os.getenv("LOG_FILE_MAX_BYTES", str(10 * 1024 * 1024))),
            log_file_backup_count=int(os.getenv("LOG_FILE_BACKUP_COUNT", "5")),
            json_console=os.getenv("LOG_JSON", "false").lower() == "true",
            quiet_http=os.getenv("LOG_QUIET_HTTP", "true").lower() == "true",
        )

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If configuration is invalid
        """
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. Must be one of {VALID_LOG_LEVELS}"
            )

        if not self.log_file_name:
            raise ValueError("log_file_name cannot be empty")

        if self.log_file_max_bytes < 1024:  # At least 1 KB
            raise ValueError(
                f"log_file_max_bytes must be >= 1024, got {self.log_file_max_bytes}"
            )

        if self.log_file_backup_count < 1:
            raise ValueError(
                f"log_file_backup_count must be >= 1, got {self.log_file_backup_count}"
            )
