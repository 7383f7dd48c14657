"""Pytest configuration and fixtures for logging_module tests."""

import logging
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from logging_module.config import LoggingConfig


@pytest.fixture
def log_dir() -> Generator[Path, None, None]:
    """Create a temporary log directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(log_dir: Path) -> LoggingConfig:
    """Create test configuration writing to a temporary directory."""
    return LoggingConfig(
        log_level="DEBUG",
        log_path=str(log_dir),
        log_file_name="test.log",
        log_file_max_bytes=1024 * 1024,
        log_file_backup_count=2,
    )


@pytest.fixture
def isolated_logger() -> Generator[str, None, None]:
    """Name of a logger whose handlers are closed after the test."""
    name = "logging_module.tests.isolated"
    yield name
    logger = logging.getLogger(name)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
