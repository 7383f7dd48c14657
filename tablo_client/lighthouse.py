"""Lighthouse cloud API client.

Lighthouse is the cloud service behind Tablo devices: device discovery,
account details, device context selection and the cloud guide.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from tablo_client.config import LIGHTHOUSE_BASE_URL, LighthouseConfig
from tablo_client.exceptions import AuthenticationError, TabloAPIError, TabloError
from tablo_client.models import (
    AccountInfo,
    GuideAiring,
    GuideChannel,
    LighthouseDevice,
    LighthouseToken,
    LiveAiring,
)

logger = logging.getLogger(__name__)

BODY_METHODS = ("PATCH", "POST", "PUT")
CLIENT_ERRORS = (httpx.HTTPError, TabloError, ValidationError, ValueError)


def _build_url(base_url: str, endpoint: str) -> str:
    return endpoint if "://" in endpoint else f"{base_url}{endpoint}"


class Lighthouse:
    """Authenticated Lighthouse client for one account."""

    base_url = LIGHTHOUSE_BASE_URL

    def __init__(
        self,
        email: str,
        password: str,
        timeout: float = 2.0,
        request_logging: bool = False,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Lighthouse client.

        Args:
            email: Account email
            password: Account password
            timeout: Default request timeout (seconds)
            request_logging: Log every request at debug level
            base_url: Override for the API base URL
            transport: Optional httpx transport (used by tests)
        """
        self.email = email
        self.password = password
        self.timeout = timeout
        self.request_logging = request_logging
        if base_url:
            self.base_url = base_url.rstrip("/")
        self._transport = transport
        self._token: Optional[LighthouseToken] = None
        self._auth_lock = asyncio.Lock()
        self.context_token = ""

    @classmethod
    def from_config(
        cls,
        config: LighthouseConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "Lighthouse":
        """Create a client from a :class:`LighthouseConfig`."""
        return cls(
            config.email,
            config.password,
            timeout=config.timeout,
            request_logging=config.request_logging,
            base_url=config.base_url,
            transport=transport,
        )

    @property
    def authenticated(self) -> bool:
        return self._token is not None

    # Unauthenticated endpoints

    @classmethod
    async def request(
        cls,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Any:
        """Execute an unauthenticated request and return the decoded body.

        Raises:
            TabloAPIError: If the response is not successful
            httpx.HTTPError: On transport failures and timeouts
        """
        url = _build_url(cls.base_url, endpoint)
        json_body = payload if method in BODY_METHODS else None

        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.request(method, url, params=params, json=json_body)

        if not response.is_success:
            raise TabloAPIError(str(response.url), response.status_code, response.reason_phrase)

        return response.json()

    @classmethod
    async def list_available_devices(
        cls,
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> List[LighthouseDevice]:
        """Devices reachable from the network this request originates from."""
        try:
            devices = await cls.request("GET", "/devices/", timeout=timeout, transport=transport)
            return [LighthouseDevice.model_validate(device) for device in devices or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Device discovery failed: {e}")
            return []

    @classmethod
    async def list_virtual_devices(
        cls,
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> List[LighthouseDevice]:
        """Virtual (cloud) devices reachable from this network."""
        try:
            devices = await cls.request(
                "GET", "/devices/virtual/", timeout=timeout, transport=transport
            )
            return [LighthouseDevice.model_validate(device) for device in devices or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Virtual device discovery failed: {e}")
            return []

    @classmethod
    async def virtual_device(
        cls,
        server_id: str,
        timeout: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> Optional[LighthouseDevice]:
        """Look up one virtual device by server id."""
        try:
            device = await cls.request(
                "GET", f"/devices/virtual/{server_id}/", timeout=timeout, transport=transport
            )
            return LighthouseDevice.model_validate(device) if device else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Virtual device lookup for {server_id} failed: {e}")
            return None

    # Authentication

    async def authenticate(self, timeout: Optional[float] = None) -> bool:
        """Log in and store the access token.

        Returns:
            True on success; the stored token is cleared on rejection
        """
        try:
            async with httpx.AsyncClient(
                timeout=timeout or self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    f"{self.base_url}/login/",
                    json={"email": self.email, "password": self.password},
                )

            if response.is_success:
                self._token = LighthouseToken.model_validate(response.json())
                logger.info("Authenticated with Lighthouse")
                return True

            logger.warning(f"Lighthouse login rejected: HTTP {response.status_code}")
            self._token = None
            return False

        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.error(f"Lighthouse login failed: {e}")
            return False

    async def execute(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        payload: Optional[Any] = None,
        timeout: Optional[float] = None,
        context_token: Optional[str] = None,
        is_retry: bool = False,
    ) -> Any:
        """Execute an authenticated request and return the decoded body.

        A 401 answer triggers one re-authentication and retry.

        Raises:
            AuthenticationError: If no token can be obtained
            TabloAPIError: If the response is not successful
            httpx.HTTPError: On transport failures and timeouts
        """
        async with self._auth_lock:
            if self._token is None and not await self.authenticate(timeout):
                raise AuthenticationError("Failed to authenticate with Lighthouse API")

        headers = {
            "Accept": "application/json",
            "Authorization": f"{self._token.token_type} {self._token.access_token}",
        }
        if context_token:
            headers["Lighthouse"] = context_token

        url = _build_url(self.base_url, endpoint)
        json_body = payload if method in BODY_METHODS else None

        if self.request_logging:
            logger.debug(
                f"{method} {json.dumps(headers)} {url} {json.dumps(json_body) if json_body else ''}"
            )

        async with httpx.AsyncClient(
            timeout=timeout or self.timeout, transport=self._transport
        ) as client:
            response = await client.request(
                method, url, params=params, json=json_body, headers=headers
            )

        if not response.is_success:
            if response.status_code == 401 and not is_retry:
                logger.info("Lighthouse token rejected, re-authenticating")
                if await self.authenticate(timeout):
                    return await self.execute(
                        method, endpoint, params, payload, timeout, context_token, is_retry=True
                    )

            raise TabloAPIError(str(response.url), response.status_code, response.reason_phrase)

        return response.json()

    # Account endpoints

    async def account_info(self, timeout: Optional[float] = None) -> Optional[AccountInfo]:
        try:
            data = await self.execute("GET", "/account/", timeout=timeout)
            return AccountInfo.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch account info: {e}")
            return None

    async def devices(self, timeout: Optional[float] = None) -> List[LighthouseDevice]:
        """Devices registered to the account."""
        try:
            data = await self.execute("GET", "/account/devices/", timeout=timeout)
            return [LighthouseDevice.model_validate(device) for device in data or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to list account devices: {e}")
            return []

    async def resolve_device(
        self, server_id: str, timeout: Optional[float] = None
    ) -> Optional[LighthouseDevice]:
        try:
            data = await self.execute(
                "GET", f"/account/devices/{server_id}/resolve/", timeout=timeout
            )
            return LighthouseDevice.model_validate(data) if data else None
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to resolve device {server_id}: {e}")
            return None

    async def select_device_context(
        self,
        profile_id: str,
        server_id: str,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """Select the profile/device pair used by guide requests.

        The returned context token is remembered and used as the default for
        the guide endpoints.

        Args:
            profile_id: Account profile identifier
            server_id: Device server id

        Returns:
            Context token, or None on failure
        """
        try:
            data = await self.execute(
                "POST",
                "/account/select/",
                payload={"pid": profile_id, "sid": server_id},
                timeout=timeout,
            )
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to select device context: {e}")
            return None

        token = (data or {}).get("token")
        if token:
            self.context_token = token
        return token

    # Guide endpoints

    async def guide_channels(
        self,
        context_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> List[GuideChannel]:
        context_token = context_token or self.context_token
        try:
            data = await self.execute(
                "GET",
                f"/account/{context_token}/guide/channels/",
                timeout=timeout,
                context_token=context_token,
            )
            return [GuideChannel.model_validate(channel) for channel in data or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch guide channels: {e}")
            return []

    async def channel_airings(
        self,
        channel_id: str,
        context_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> List[GuideAiring]:
        context_token = context_token or self.context_token
        try:
            data = await self.execute(
                "GET",
                f"/account/guide/channels/{channel_id}/live/",
                timeout=timeout,
                context_token=context_token,
            )
            return [GuideAiring.model_validate(airing) for airing in data or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch airings for channel {channel_id}: {e}")
            return []

    async def current_live_airings(
        self,
        context_token: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> List[LiveAiring]:
        """What is airing right now on every guide channel."""
        context_token = context_token or self.context_token
        try:
            data = await self.execute(
                "GET",
                f"/account/{context_token}/guide/channels/live/",
                timeout=timeout,
                context_token=context_token,
            )
            return [LiveAiring.model_validate(airing) for airing in data or []]
        except CLIENT_ERRORS as e:
            logger.warning(f"Failed to fetch live airings: {e}")
            return []
