"""Signed HTTP transport for the Tablo device API.

Handles base URL resolution, request signing and JSON (de)serialization. Higher
level endpoint wrappers live in :mod:`tablo_client.device`.
"""

import json
import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import httpx

from tablo_client.config import TabloConfig
from tablo_client.signing import generate_auth_headers

logger = logging.getLogger(__name__)

BODY_METHODS = ("PATCH", "POST", "PUT")


class TabloAPI:
    """Base client for a single Tablo device."""

    def __init__(
        self,
        host_or_uri: str,
        access_key: str,
        secret_key: str,
        ssl: bool = False,
        port: int = 8887,
        device_id: Optional[str] = None,
        timeout: float = 2.0,
        request_logging: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the device API client.

        Args:
            host_or_uri: Hostname/IP of the device, or a full ``http(s)://`` URI
            access_key: API access key used for signing
            secret_key: API secret key used for signing
            ssl: Use HTTPS when a bare host is given
            port: Device API port when a bare host is given
            device_id: Client device identifier (random UUID when omitted)
            timeout: Default request timeout in seconds
            request_logging: Log every request at debug level
            transport: Optional httpx transport (used by tests)
        """
        if "://" in host_or_uri:
            self.base_url = host_or_uri.rstrip("/")
            self.ssl = self.base_url.startswith("https")
        else:
            self.ssl = ssl
            scheme = "https" if ssl else "http"
            self.base_url = f"{scheme}://{host_or_uri}:{port}"

        self.access_key = access_key
        self.secret_key = secret_key
        self.device_id = device_id or str(uuid.uuid4())
        self.timeout = timeout
        self.request_logging = request_logging
        self._transport = transport

    @classmethod
    def from_config(
        cls,
        config: TabloConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Create a client from a :class:`TabloConfig`."""
        return cls(
            config.host,
            access_key=config.access_key,
            secret_key=config.secret_key,
            ssl=config.ssl,
            port=config.port,
            device_id=config.device_id,
            timeout=config.timeout,
            request_logging=config.request_logging,
            transport=transport,
        )

    @staticmethod
    def calculate_endtime(start_time: datetime, duration: int) -> datetime:
        """End of an airing given its start and duration in seconds."""
        return start_time + timedelta(seconds=duration)

    @staticmethod
    def current_hour(now: Optional[datetime] = None) -> Tuple[datetime, datetime, datetime]:
        """Return ``(now, hour_start, hour_end)`` as timezone-aware datetimes."""
        if now is None:
            now = datetime.now().astimezone()
        now = now.replace(microsecond=0)
        start = now.replace(minute=0, second=0)
        return now, start, start + timedelta(hours=1)

    async def execute(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """Execute a signed request against the device.

        Args:
            method: HTTP method
            endpoint: Path relative to the device base URL
            params: Query string values (``None`` is sent as an empty value)
            payload: JSON body for PATCH/POST/PUT
            timeout: Request timeout (defaults to the client timeout)

        Returns:
            httpx.Response: The raw response

        Raises:
            httpx.HTTPError: On transport failures and timeouts
        """
        body = None
        if payload is not None and method in BODY_METHODS:
            body = json.dumps(payload, separators=(",", ":"))

        headers = generate_auth_headers(
            method,
            endpoint,
            access_key=self.access_key,
            secret_key=self.secret_key,
            body=body,
        )
        if body is not None:
            headers["Content-Type"] = "application/json"

        query = None
        if params:
            query = {key: "" if value is None else value for key, value in params.items()}

        url = f"{self.base_url}{endpoint}"

        if self.request_logging:
            logger.debug(f"{method} {json.dumps(headers)} {url} {query or ''} {body or ''}")

        async with httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
        ) as client:
            return await client.request(method, url, params=query, content=body, headers=headers)

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
        as_json: bool = True,
    ) -> Optional[Any]:
        """GET an endpoint, returning the decoded body or ``None`` if not OK."""
        response = await self.execute("GET", endpoint, params, timeout=timeout)

        if not response.is_success:
            logger.debug(f"GET {endpoint} failed: HTTP {response.status_code}")
            return None

        return response.json() if as_json else response.text

    async def post(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        timeout: Optional[float] = None,
        as_json: bool = True,
    ) -> Optional[Any]:
        """POST to an endpoint, returning the decoded body or ``None`` if not OK."""
        response = await self.execute("POST", endpoint, params, payload, timeout=timeout)

        if not response.is_success:
            logger.debug(f"POST {endpoint} failed: HTTP {response.status_code}")
            return None

        return response.json() if as_json else response.text

    async def delete(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """DELETE an endpoint, returning whether the device answered OK."""
        response = await self.execute("DELETE", endpoint, params, timeout=timeout)
        return response.is_success

    async def batch(
        self,
        endpoints: List[str],
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Resolve many object paths with a single ``/batch`` request.

        Batch lookups are much faster than one request per path, e.g. 50
        airing paths resolve in one call.

        Args:
            endpoints: Object paths to resolve
            timeout: Request timeout

        Returns:
            Mapping of path to object (empty on failure)
        """
        try:
            return await self.post("/batch", payload=endpoints, timeout=timeout) or {}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Batch request for {len(endpoints)} paths failed: {e}")
            return {}
