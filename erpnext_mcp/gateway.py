"""Remote document gateway for ERPNext.

Each method performs exactly one single-document REST call against the
Frappe ``/api/resource`` endpoints and either returns the response data or
raises a subclass of ``ERPNextMCPError``. There is no multi-document
transaction support on the backend.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any
from typing import Protocol
from urllib.parse import quote

import httpx

from .exceptions import AuthenticationError
from .exceptions import ConflictError
from .exceptions import DocumentNotFoundError
from .exceptions import ERPNextMCPError
from .exceptions import GatewayError
from .exceptions import GatewayTimeoutError
from .exceptions import InvalidRequestError
from .exceptions import PermissionDeniedError
from .exceptions import RateLimitError

if TYPE_CHECKING:
    from .session import ERPNextSession

logger = logging.getLogger(__name__)

DOCSTATUS_SUBMITTED = 1
DOCSTATUS_CANCELLED = 2

VALIDATE_DOC_PATH = "/api/method/frappe.model.document.validate_doc"


class DocumentGateway(Protocol):
    """The single-document operations the bulk executor depends on."""

    async def create(self, doctype: str, doc: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, doctype: str, name: str, patch: dict[str, Any]) -> dict[str, Any]: ...

    async def delete(self, doctype: str, name: str) -> dict[str, Any]: ...

    async def submit(self, doctype: str, name: str) -> dict[str, Any]: ...

    async def cancel(self, doctype: str, name: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry applied inside one gateway call."""

    max_retries: int = 0
    initial_delay: float = 1.0
    retry_on_status: tuple[int, ...] = (429, 502, 503, 504)

    def delay_for(self, attempt: int) -> float:
        return self.initial_delay * (2**attempt)


class ERPNextGateway:
    """REST gateway bound to one authenticated session."""

    def __init__(self, session: ERPNextSession, retry_policy: RetryPolicy | None = None):
        self._session = session
        self._retry_policy = retry_policy or RetryPolicy()

    async def create(self, doctype: str, doc: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", _resource_path(doctype), {"data": doc})

    async def update(self, doctype: str, name: str, patch: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PUT", _resource_path(doctype, name), {"data": patch})

    async def delete(self, doctype: str, name: str) -> dict[str, Any]:
        await self._request("DELETE", _resource_path(doctype, name))
        return {}

    async def submit(self, doctype: str, name: str) -> dict[str, Any]:
        return await self._request(
            "PUT", _resource_path(doctype, name), {"data": {"docstatus": DOCSTATUS_SUBMITTED}}
        )

    async def cancel(self, doctype: str, name: str) -> dict[str, Any]:
        return await self._request(
            "PUT", _resource_path(doctype, name), {"data": {"docstatus": DOCSTATUS_CANCELLED}}
        )

    async def validate_document(self, doctype: str, doc: dict[str, Any]) -> Any:
        """Ask ERPNext to validate ``doc`` without saving it."""
        body = await self._request_raw(
            "POST",
            VALIDATE_DOC_PATH,
            {"doctype": doctype, "doc": json.dumps(doc, default=str), "action": "validate"},
        )
        if isinstance(body, dict) and "message" in body:
            return body["message"]
        return body

    async def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> dict[str, Any]:
        body = await self._request_raw(method, path, payload)
        if isinstance(body, dict) and isinstance(body.get("data"), dict):
            return body["data"]
        return body if isinstance(body, dict) else {}

    async def _request_raw(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        client = self._session.client
        attempt = 0
        while True:
            try:
                response = await client.request(method, path, json=payload)
            except httpx.TimeoutException as e:
                raise GatewayTimeoutError(f"{method} {path} timed out") from e
            except httpx.HTTPError as e:
                raise GatewayError(f"{method} {path} failed: {e}") from e

            if (
                response.status_code in self._retry_policy.retry_on_status
                and attempt < self._retry_policy.max_retries
            ):
                delay = self._retry_policy.delay_for(attempt)
                logger.warning(
                    "%s %s returned %d, retrying in %.1fs", method, path, response.status_code, delay
                )
                attempt += 1
                await asyncio.sleep(delay)
                continue

            if response.is_error:
                raise map_http_error(response)
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise GatewayError(f"{method} {path} returned a non-JSON body", response.status_code) from e


def _resource_path(doctype: str, name: str | None = None) -> str:
    path = f"/api/resource/{quote(doctype, safe='')}"
    if name is not None:
        path = f"{path}/{quote(name, safe='')}"
    return path


def frappe_error_message(response: httpx.Response) -> str:
    """Extract the most useful error text from a Frappe error response."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("message", "exception", "exc_type"):
            if body.get(key):
                return str(body[key])
    return f"HTTP {response.status_code}"


def map_http_error(response: httpx.Response) -> ERPNextMCPError:
    """Map an ERPNext error response to an exception.

    Policy:
        - 400/417/422 -> InvalidRequestError
        - 401 -> AuthenticationError
        - 403 -> PermissionDeniedError
        - 404 -> DocumentNotFoundError
        - 409 -> ConflictError
        - 429 -> RateLimitError
        - otherwise -> GatewayError
    """
    status = response.status_code
    message = frappe_error_message(response)
    details = {"status_code": status}

    if status in (400, 417, 422):
        return InvalidRequestError(message, status)
    if status == 401:
        return AuthenticationError(message, details=details)
    if status == 403:
        return PermissionDeniedError(message, details=details)
    if status == 404:
        return DocumentNotFoundError(message, status)
    if status == 409:
        return ConflictError(message, status)
    if status == 429:
        return RateLimitError(message, status)
    return GatewayError(message, status)
