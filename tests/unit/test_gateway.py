"""Unit tests for the ERPNext REST gateway."""

import json

import httpx
import pytest

from erpnext_mcp.exceptions import AuthenticationError
from erpnext_mcp.exceptions import ConflictError
from erpnext_mcp.exceptions import DocumentNotFoundError
from erpnext_mcp.exceptions import GatewayError
from erpnext_mcp.exceptions import GatewayTimeoutError
from erpnext_mcp.exceptions import InvalidRequestError
from erpnext_mcp.exceptions import PermissionDeniedError
from erpnext_mcp.exceptions import RateLimitError
from erpnext_mcp.gateway import ERPNextGateway
from erpnext_mcp.gateway import RetryPolicy
from erpnext_mcp.gateway import frappe_error_message
from erpnext_mcp.gateway import map_http_error


class Recorder:
    """Request handler that records resource calls and answers from a queue."""

    def __init__(self, *responses):
        self.requests: list[httpx.Request] = []
        self.responses = list(responses)

    def __call__(self, request):
        if not request.url.path.startswith(("/api/resource", "/api/method/frappe.model")):
            return None
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def _body(request):
    return json.loads(request.content)


class TestRequests:
    """Each operation issues exactly one REST call."""

    @pytest.mark.asyncio
    async def test_create_posts_document(self, make_session):
        recorder = Recorder(httpx.Response(200, json={"data": {"name": "CUST-0001", "customer_name": "Acme"}}))
        gateway = ERPNextGateway(await make_session(recorder))

        data = await gateway.create("Customer", {"customer_name": "Acme"})

        assert data == {"name": "CUST-0001", "customer_name": "Acme"}
        request = recorder.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/api/resource/Customer"
        assert _body(request) == {"data": {"customer_name": "Acme"}}

    @pytest.mark.asyncio
    async def test_update_puts_patch(self, make_session):
        recorder = Recorder(httpx.Response(200, json={"data": {"name": "CUST-0001", "territory": "EU"}}))
        gateway = ERPNextGateway(await make_session(recorder))

        await gateway.update("Customer", "CUST-0001", {"territory": "EU"})

        request = recorder.requests[0]
        assert request.method == "PUT"
        assert request.url.path == "/api/resource/Customer/CUST-0001"
        assert _body(request) == {"data": {"territory": "EU"}}

    @pytest.mark.asyncio
    async def test_delete_returns_empty_dict(self, make_session):
        recorder = Recorder(httpx.Response(202, json={"message": "ok"}))
        gateway = ERPNextGateway(await make_session(recorder))

        assert await gateway.delete("Customer", "CUST-0001") == {}
        assert recorder.requests[0].method == "DELETE"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method_name, docstatus", [("submit", 1), ("cancel", 2)])
    async def test_docstatus_transitions(self, make_session, method_name, docstatus):
        recorder = Recorder(httpx.Response(200, json={"data": {"name": "SO-1", "docstatus": docstatus}}))
        gateway = ERPNextGateway(await make_session(recorder))

        data = await getattr(gateway, method_name)("Sales Order", "SO-1")

        assert data["docstatus"] == docstatus
        assert _body(recorder.requests[0]) == {"data": {"docstatus": docstatus}}

    @pytest.mark.asyncio
    async def test_path_segments_are_quoted(self, make_session):
        recorder = Recorder(httpx.Response(200, json={"data": {}}))
        gateway = ERPNextGateway(await make_session(recorder))

        await gateway.submit("Sales Invoice", "ACC/SINV/0001")

        assert recorder.requests[0].url.raw_path.decode() == "/api/resource/Sales%20Invoice/ACC%2FSINV%2F0001"

    @pytest.mark.asyncio
    async def test_validate_document_sends_json_string(self, make_session):
        recorder = Recorder(httpx.Response(200, json={"message": {"valid": True}}))
        gateway = ERPNextGateway(await make_session(recorder))

        result = await gateway.validate_document("Customer", {"customer_name": "Acme"})

        assert result == {"valid": True}
        body = _body(recorder.requests[0])
        assert body["doctype"] == "Customer"
        assert json.loads(body["doc"]) == {"customer_name": "Acme"}
        assert body["action"] == "validate"


class TestErrors:
    """Backend failures surface as typed exceptions."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, error_type",
        [
            (400, InvalidRequestError),
            (417, InvalidRequestError),
            (401, AuthenticationError),
            (403, PermissionDeniedError),
            (404, DocumentNotFoundError),
            (409, ConflictError),
            (429, RateLimitError),
            (500, GatewayError),
        ],
    )
    async def test_status_mapping(self, make_session, status, error_type):
        recorder = Recorder(httpx.Response(status, json={"message": "backend says no"}))
        gateway = ERPNextGateway(await make_session(recorder))

        with pytest.raises(error_type) as exc_info:
            await gateway.update("Customer", "A", {"territory": "EU"})

        assert exc_info.value.message == "backend says no"

    @pytest.mark.asyncio
    async def test_timeout(self, make_session):
        recorder = Recorder(httpx.ReadTimeout("slow"))
        gateway = ERPNextGateway(await make_session(recorder))

        with pytest.raises(GatewayTimeoutError):
            await gateway.delete("Customer", "A")

    @pytest.mark.asyncio
    async def test_transport_error(self, make_session):
        recorder = Recorder(httpx.ConnectError("refused"))
        gateway = ERPNextGateway(await make_session(recorder))

        with pytest.raises(GatewayError) as exc_info:
            await gateway.create("Customer", {})

        assert not isinstance(exc_info.value, GatewayTimeoutError)

    @pytest.mark.asyncio
    async def test_non_json_body(self, make_session):
        recorder = Recorder(httpx.Response(200, text="<html>maintenance</html>"))
        gateway = ERPNextGateway(await make_session(recorder))

        with pytest.raises(GatewayError, match="non-JSON"):
            await gateway.create("Customer", {})

    def test_error_message_preference(self):
        assert frappe_error_message(httpx.Response(417, json={"exception": "frappe.exceptions.MandatoryError"})) == (
            "frappe.exceptions.MandatoryError"
        )
        assert frappe_error_message(httpx.Response(404, json={"exc_type": "DoesNotExistError"})) == "DoesNotExistError"
        assert frappe_error_message(httpx.Response(502, text="Bad Gateway")) == "HTTP 502"

    def test_map_http_error_keeps_status(self):
        error = map_http_error(httpx.Response(404, json={"message": "Customer A not found"}))

        assert isinstance(error, DocumentNotFoundError)
        assert error.status_code == 404


class TestRetryPolicy:
    """Bounded retry inside a single gateway call."""

    def test_default_policy_does_not_retry(self):
        assert RetryPolicy().max_retries == 0

    def test_delay_grows_exponentially(self):
        policy = RetryPolicy(initial_delay=0.5)

        assert [policy.delay_for(attempt) for attempt in range(3)] == [0.5, 1.0, 2.0]

    @pytest.mark.asyncio
    async def test_no_retry_by_default(self, make_session):
        recorder = Recorder(httpx.Response(503, json={}), httpx.Response(200, json={"data": {}}))
        gateway = ERPNextGateway(await make_session(recorder))

        with pytest.raises(GatewayError):
            await gateway.submit("Sales Order", "SO-1")

        assert len(recorder.requests) == 1

    @pytest.mark.asyncio
    async def test_retries_transient_status(self, make_session, mocker):
        sleep = mocker.patch("erpnext_mcp.gateway.asyncio.sleep", new=mocker.AsyncMock())
        recorder = Recorder(
            httpx.Response(503, json={}),
            httpx.Response(429, json={}),
            httpx.Response(200, json={"data": {"name": "SO-1", "docstatus": 1}}),
        )
        gateway = ERPNextGateway(await make_session(recorder), RetryPolicy(max_retries=2, initial_delay=0.1))

        data = await gateway.submit("Sales Order", "SO-1")

        assert data["docstatus"] == 1
        assert len(recorder.requests) == 3
        assert [call.args[0] for call in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_retries_are_bounded(self, make_session, mocker):
        mocker.patch("erpnext_mcp.gateway.asyncio.sleep", new=mocker.AsyncMock())
        recorder = Recorder(httpx.Response(502, json={"message": "upstream down"}))
        gateway = ERPNextGateway(await make_session(recorder), RetryPolicy(max_retries=2, initial_delay=0))

        with pytest.raises(GatewayError, match="upstream down"):
            await gateway.cancel("Sales Order", "SO-1")

        assert len(recorder.requests) == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self, make_session, mocker):
        mocker.patch("erpnext_mcp.gateway.asyncio.sleep", new=mocker.AsyncMock())
        recorder = Recorder(httpx.Response(404, json={}))
        gateway = ERPNextGateway(await make_session(recorder), RetryPolicy(max_retries=3))

        with pytest.raises(DocumentNotFoundError):
            await gateway.delete("Customer", "A")

        assert len(recorder.requests) == 1
