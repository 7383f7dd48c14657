"""Exceptions raised by the Tablo device and Lighthouse clients."""

from typing import Optional


class TabloError(Exception):
    """Base exception for Tablo client errors."""


class TabloAPIError(TabloError):
    """Raised when an API endpoint answers with a non-success status."""

    def __init__(self, url: str, status_code: int, reason: Optional[str] = None):
        self.url = url
        self.status_code = status_code
        self.reason = reason or ""
        super().__init__(f"{url} [{status_code}] {self.reason}".rstrip())


class AuthenticationError(TabloError):
    """Raised when the Lighthouse login is rejected."""
