"""Logging setup shared by the Tablo client and the live transcoder.

Main Components:
    - LoggingConfig: Configuration management
    - JsonFormatter: Structured JSON log records
    - setup_logging: Console plus rotating file handlers

Example:
    >>> from logging_module import LoggingConfig, setup_logging
    >>> setup_logging(LoggingConfig.from_env())
"""

from logging_module.config import LoggingConfig
from logging_module.logger import JsonFormatter, setup_logging

__version__ = "1.0.0"
__all__ = ["LoggingConfig", "JsonFormatter", "setup_logging"]
