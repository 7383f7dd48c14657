"""Request signing for the Tablo device API.

Every device request carries an ``Authorization`` header of the form
``tablo:<access_key>:<signature>`` and a ``Date`` header holding the same
timestamp that was signed. The device rejects stale or mismatched signatures.
"""

import hashlib
import hmac
from email.utils import formatdate
from typing import Dict, Optional


def http_date() -> str:
    """Current time as an RFC 7231 HTTP date (``Tue, 14 Oct 2025 12:00:00 GMT``)."""
    return formatdate(usegmt=True)


def body_digest(body: Optional[str]) -> str:
    """MD5 hex digest of the request body, or an empty string without a body."""
    if not body:
        return ""
    return hashlib.md5(body.encode("utf-8")).hexdigest()


def sign_request(
    method: str,
    path: str,
    body: Optional[str],
    secret_key: str,
    date: str,
) -> str:
    """Compute the upper-case HMAC-MD5 signature for a device request.

    Args:
        method: HTTP method (``GET``, ``POST``...)
        path: Request path without query string
        body: Serialized JSON body, if any
        secret_key: Device API secret key
        date: HTTP date placed in the ``Date`` header

    Returns:
        Hex signature in upper case
    """
    message = f"{method}\n{path}\n{body_digest(body)}\n{date}"
    return (
        hmac.new(secret_key.encode("utf-8"), message.encode("utf-8"), hashlib.md5)
        .hexdigest()
        .upper()
    )


def generate_auth_headers(
    method: str,
    path: str,
    access_key: str,
    secret_key: str,
    body: Optional[str] = None,
    date: Optional[str] = None,
) -> Dict[str, str]:
    """Build the ``Authorization`` and ``Date`` headers for a device request.

    Args:
        method: HTTP method
        path: Request path without query string
        access_key: Device API access key
        secret_key: Device API secret key
        body: Serialized JSON body, if any
        date: HTTP date to sign (defaults to now)

    Returns:
        Header dictionary
    """
    date = date or http_date()
    signature = sign_request(method, path, body, secret_key, date)

    return {
        "Authorization": f"tablo:{access_key}:{signature}",
        "Date": date,
    }
