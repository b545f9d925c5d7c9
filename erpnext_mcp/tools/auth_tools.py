"""Authentication Tools.

- erp_auth_connect: Open an authenticated session against an ERPNext site
- erp_auth_whoami: Report the user and roles behind the current session
"""

from typing import Any

from mcp.server import FastMCP

from ..error_handler import AUTH_FAILED
from ..error_handler import NOT_AUTHENTICATED_MESSAGE
from ..error_handler import ErrorContext
from ..error_handler import handle_mcp_tool_error
from ..exceptions import ERPNextMCPError
from ..logger_config import log_mcp_call
from ..models import ToolResponse
from ..session import SessionStore


def register_auth_tools(mcp_server: FastMCP, sessions: SessionStore) -> None:
    """Register all authentication tools with the MCP server."""

    @mcp_server.tool()
    @log_mcp_call
    async def erp_auth_connect(base_url: str, api_key: str, api_secret: str) -> dict[str, Any]:
        """Establish an authenticated connection to ERPNext using an API key and secret.

        The credentials are verified against ``frappe.auth.get_logged_user``
        before the session replaces any previous one.

        Parameters:
            base_url (str): ERPNext base URL (e.g., https://erp.example.com)
            api_key (str): ERPNext API key
            api_secret (str): ERPNext API secret

        Returns:
            dict: ``{"ok": true, "data": {"connected": true}}`` on success, or
            ``{"ok": false, "error": {"code": "AUTH_FAILED", "message": ...}}``

        Example Usage:
            ```json
            {
                "name": "erp_auth_connect",
                "arguments": {
                    "base_url": "https://erp.example.com",
                    "api_key": "a1b2c3d4e5",
                    "api_secret": "f6g7h8i9j0"
                }
            }
            ```
        """
        try:
            with ErrorContext("erp_auth_connect", base_url=base_url, api_key=api_key):
                await sessions.connect(base_url, api_key, api_secret)
        except ERPNextMCPError as e:
            return handle_mcp_tool_error("erp_auth_connect", e, {"base_url": base_url}).model_dump(
                exclude_none=True
            )
        return ToolResponse.success({"connected": True}).model_dump(exclude_none=True)

    @mcp_server.tool()
    @log_mcp_call
    async def erp_auth_whoami() -> dict[str, Any]:
        """Get the current authenticated user and their roles.

        Parameters:
            None

        Returns:
            dict: ``{"ok": true, "data": {"user": str, "roles": [str]}}``, or
            an ``AUTH_FAILED`` error when no session is connected

        Example Usage:
            ```json
            {
                "name": "erp_auth_whoami",
                "arguments": {}
            }
            ```

        Example Response:
            ```json
            {
                "ok": true,
                "data": {"user": "jane@example.com", "roles": ["Accounts User", "Sales User"]}
            }
            ```
        """
        session = await sessions.get()
        if session is None:
            return ToolResponse.failure(AUTH_FAILED, NOT_AUTHENTICATED_MESSAGE).model_dump(exclude_none=True)
        try:
            user_info = await session.whoami()
        except ERPNextMCPError as e:
            return handle_mcp_tool_error("erp_auth_whoami", e).model_dump(exclude_none=True)
        return ToolResponse.success(user_info).model_dump(exclude_none=True)
