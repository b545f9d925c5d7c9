"""The pytest configuration for ERPNext MCP testing.

Provides an in-memory document gateway for executor tests and helpers that
build sessions over ``httpx.MockTransport`` so no test talks to a real site.
"""

from typing import Any

import httpx
import pytest
import pytest_asyncio

from erpnext_mcp.config import reset_settings
from erpnext_mcp.exceptions import DocumentNotFoundError
from erpnext_mcp.session import ERPNextSession

TEST_BASE_URL = "https://erp.test"


class FakeGateway:
    """In-memory gateway that records every call in order.

    ``fail_on`` makes matching calls raise; create assigns sequential names
    unless the document already carries one.
    """

    def __init__(self):
        self.calls: list[tuple[str, str, Any]] = []
        self.documents: dict[tuple[str, str], dict[str, Any]] = {}
        self.omit_created_names = False
        self._failures: list[tuple[str, str | None, Exception]] = []
        self._sequence = 0

    def fail_on(self, method: str, name: str | None = None, error: Exception | None = None) -> None:
        self._failures.append((method, name, error or RuntimeError(f"{method} failed")))

    def calls_to(self, method: str) -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] == method]

    def _check(self, method: str, name: str | None) -> None:
        for failing_method, failing_name, error in self._failures:
            if failing_method == method and failing_name in (None, name):
                raise error

    async def create(self, doctype: str, doc: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("create", doctype, doc))
        self._check("create", doc.get("name"))
        self._sequence += 1
        name = doc.get("name") or f"{doctype.upper().replace(' ', '-')}-{self._sequence:04d}"
        created = {**doc, "name": name}
        self.documents[(doctype, name)] = created
        if self.omit_created_names:
            return {key: value for key, value in created.items() if key != "name"}
        return created

    async def update(self, doctype: str, name: str, patch: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(("update", doctype, name))
        self._check("update", name)
        if (doctype, name) not in self.documents:
            raise DocumentNotFoundError(f"{doctype} {name} not found", 404)
        self.documents[(doctype, name)].update(patch)
        return self.documents[(doctype, name)]

    async def delete(self, doctype: str, name: str) -> dict[str, Any]:
        self.calls.append(("delete", doctype, name))
        self._check("delete", name)
        self.documents.pop((doctype, name), None)
        return {}

    async def submit(self, doctype: str, name: str) -> dict[str, Any]:
        self.calls.append(("submit", doctype, name))
        self._check("submit", name)
        return {"name": name, "docstatus": 1}

    async def cancel(self, doctype: str, name: str) -> dict[str, Any]:
        self.calls.append(("cancel", doctype, name))
        self._check("cancel", name)
        return {"name": name, "docstatus": 2}


@pytest.fixture
def fake_gateway():
    """Provide a fresh in-memory gateway."""
    return FakeGateway()


@pytest_asyncio.fixture
async def make_session():
    """Factory for sessions whose HTTP traffic is answered by ``handler``.

    The logged-user endpoint answers for "jane@example.com" unless the handler
    returns a response for it first.
    """
    sessions = []

    async def _make(handler=None) -> ERPNextSession:
        def dispatch(request: httpx.Request) -> httpx.Response:
            if handler is not None:
                response = handler(request)
                if response is not None:
                    return response
            if request.url.path == "/api/method/frappe.auth.get_logged_user":
                return httpx.Response(200, json={"message": "jane@example.com"})
            return httpx.Response(404, json={"exc_type": "DoesNotExistError"})

        session = await ERPNextSession.connect(
            TEST_BASE_URL, "key", "secret", transport=httpx.MockTransport(dispatch)
        )
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        await session.close()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep settings independent of the developer's environment."""
    for key in ("ERPNEXT_BASE_URL", "ERPNEXT_API_KEY", "ERPNEXT_API_SECRET", "MCP_METRICS_ENABLED"):
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "integration: tests that exercise the registered MCP tools end to end")
