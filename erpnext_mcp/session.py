"""Authenticated ERPNext session.

A session is an explicit value owning one ``httpx.AsyncClient`` configured
with token credentials. Gateways are bound to a session, so concurrent runs
under different credentials never share a client.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from .exceptions import AuthenticationError
from .gateway import RetryPolicy
from .gateway import frappe_error_message
from .logger_config import redact_sensitive_data
from .models import UserInfo

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

LOGGED_USER_PATH = "/api/method/frappe.auth.get_logged_user"


class ERPNextSession:
    """An authenticated connection to one ERPNext site."""

    def __init__(self, base_url: str, api_key: str, client: httpx.AsyncClient):
        self.base_url = base_url
        self.api_key = api_key
        self._client: httpx.AsyncClient | None = client

    @classmethod
    async def connect(
        cls,
        base_url: str,
        api_key: str,
        api_secret: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ERPNextSession:
        """Create a client for ``base_url`` and verify the credentials.

        Raises:
            AuthenticationError: if a parameter is missing or ERPNext rejects
                the credentials.
        """
        if not base_url or not api_key or not api_secret:
            raise AuthenticationError("Missing required authentication parameters")

        normalized_url = base_url.rstrip("/")
        client = httpx.AsyncClient(
            base_url=normalized_url,
            timeout=httpx.Timeout(timeout),
            headers={
                "Authorization": f"token {api_key}:{api_secret}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )
        session = cls(normalized_url, api_key, client)

        try:
            await session._logged_user()
        except (httpx.HTTPError, ValueError, AuthenticationError) as e:
            await client.aclose()
            logger.error(
                "Authentication failed",
                extra={"context": redact_sensitive_data({"base_url": normalized_url, "api_key": api_key})},
            )
            message = frappe_error_message(e.response) if isinstance(e, httpx.HTTPStatusError) else str(e)
            raise AuthenticationError(message or "Authentication failed") from e

        logger.info(
            "Successfully authenticated with ERPNext",
            extra={"context": redact_sensitive_data({"base_url": normalized_url, "api_key": api_key})},
        )
        return session

    @property
    def is_authenticated(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> httpx.AsyncClient:
        """The underlying HTTP client; raises once the session is closed."""
        if self._client is None:
            raise AuthenticationError("Session is closed. Please call erp_auth_connect again.")
        return self._client

    async def whoami(self) -> UserInfo:
        """Return the logged-in user and their roles."""
        try:
            username = await self._logged_user()
            response = await self.client.get(f"/api/resource/User/{quote(username, safe='')}")
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise AuthenticationError(frappe_error_message(e.response)) from e
        except (httpx.HTTPError, ValueError) as e:
            raise AuthenticationError(f"Failed to retrieve user information: {e}") from e

        user_data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(user_data, dict):
            raise AuthenticationError("Failed to retrieve user information: unexpected response")
        roles = [
            role["role"] for role in user_data.get("roles") or [] if isinstance(role, dict) and role.get("role")
        ]
        logger.info("Retrieved user info for %s (%d roles)", username, len(roles))
        return UserInfo(user=username, roles=roles)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> ERPNextSession:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _logged_user(self) -> str:
        response = await self.client.get(LOGGED_USER_PATH)
        response.raise_for_status()
        body = response.json()
        username = body.get("message") if isinstance(body, dict) else None
        if not isinstance(username, str) or not username:
            raise AuthenticationError("Unable to retrieve user information")
        return username


class SessionStore:
    """Holds the current session of one MCP server instance.

    When the settings carry credentials, the first ``get()`` connects with
    them; otherwise a session only exists after ``erp_auth_connect``.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._session: ERPNextSession | None = None
        self._lock = asyncio.Lock()

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.settings.gateway_max_retries,
            initial_delay=self.settings.gateway_retry_delay,
        )

    async def get(self) -> ERPNextSession | None:
        async with self._lock:
            if self._session is not None and self._session.is_authenticated:
                return self._session
            if not self.settings.erpnext_configured:
                return None
            try:
                self._session = await ERPNextSession.connect(
                    self.settings.erpnext_base_url,
                    self.settings.erpnext_api_key,
                    self.settings.erpnext_api_secret,
                    timeout=self.settings.request_timeout,
                )
            except AuthenticationError as e:
                logger.warning("Connecting with configured credentials failed: %s", e.message)
                return None
            return self._session

    async def connect(self, base_url: str, api_key: str, api_secret: str) -> ERPNextSession:
        """Open a new session and make it current, closing the previous one."""
        session = await ERPNextSession.connect(
            base_url, api_key, api_secret, timeout=self.settings.request_timeout
        )
        async with self._lock:
            previous, self._session = self._session, session
        if previous is not None:
            await previous.close()
        return session

    async def close(self) -> None:
        async with self._lock:
            if self._session is not None:
                await self._session.close()
                self._session = None
