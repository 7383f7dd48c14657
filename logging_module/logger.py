"""Structured logging setup.

Installs a console handler and a rotating JSON file handler on a logger
(the root logger by default), so every module logging through
``logging.getLogger(__name__)`` ends up in the same place.
"""

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

from logging_module.config import LoggingConfig

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Attributes every LogRecord carries; anything else came in through ``extra``.
RESERVED_ATTRS = frozenset(
    [
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
    ]
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Formats log records as JSON with timestamp, level, logger, message and
    any fields passed through ``extra``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted string
        """
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Values from ``extra`` may not be JSON types (paths, enums, ...)
        return json.dumps(log_data, default=str)


def setup_logging(
    config: Optional[LoggingConfig] = None,
    logger_name: Optional[str] = None,
) -> logging.Logger:
    """Configure console and rotating file logging.

    Args:
        config: Logging configuration (defaults to ``LoggingConfig.from_env()``)
        logger_name: Logger to configure (defaults to the root logger)

    Returns:
        The configured logger

    Raises:
        ValueError: If configuration is invalid
    """
    config = config or LoggingConfig.from_env()
    config.validate()

    level = getattr(logging, config.log_level)
    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        JsonFormatter() if config.json_console else logging.Formatter(CONSOLE_FORMAT)
    )
    logger.addHandler(console_handler)

    if config.log_path:
        try:
            os.makedirs(config.log_path, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(config.log_path, config.log_file_name),
                maxBytes=config.log_file_max_bytes,
                backupCount=config.log_file_backup_count,
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(JsonFormatter())
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not create log file: {e}. Logging to console only.")

    if config.quiet_http:
        for name in ("httpx", "httpcore"):
            logging.getLogger(name).setLevel(logging.WARNING)

    return logger
