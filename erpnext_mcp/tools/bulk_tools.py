"""Bulk Tools.

- erp_txn_preview: Validate a document against ERPNext without saving it
- erp_bulk_run: Execute a batch of operations with compensating rollback
"""

from typing import Any

from mcp.server import FastMCP

from ..bulk import preview_transaction
from ..bulk import run_bulk
from ..error_handler import handle_mcp_tool_error
from ..logger_config import log_mcp_call
from ..session import SessionStore


def register_bulk_tools(mcp_server: FastMCP, sessions: SessionStore) -> None:
    """Register the preview and bulk execution tools with the MCP server."""

    @mcp_server.tool()
    @log_mcp_call
    async def erp_txn_preview(doctype: str, doc: dict[str, Any]) -> dict[str, Any]:
        """Preview and validate an ERPNext transaction before executing it.

        Runs ERPNext's document validation without saving anything and
        reports the problems it finds together with a rough impact estimate.

        Parameters:
            doctype (str): ERPNext document type (e.g., "Sales Invoice")
            doc (Dict[str, Any]): Document fields to validate

        Returns:
            dict: On success ``data`` contains:
                - valid (bool): False when ERPNext reported any error
                - issues (List[Dict], optional): field, message, severity
                - warnings (List[str], optional): Warning messages only
                - estimated_impact (Dict, optional): documents_affected,
                  financial_impact, workflow_changes

        Example Usage:
            ```json
            {
                "name": "erp_txn_preview",
                "arguments": {
                    "doctype": "Sales Invoice",
                    "doc": {"customer": "CUST-0001", "grand_total": 1250.0}
                }
            }
            ```
        """
        try:
            response = await preview_transaction(await sessions.get(), doctype, doc)
        except Exception as e:
            response = handle_mcp_tool_error("erp_txn_preview", e, {"doctype": doctype})
        return response.model_dump(exclude_none=True)

    @mcp_server.tool()
    @log_mcp_call
    async def erp_bulk_run(operations: list[dict[str, Any]], rollback_on_error: bool = True) -> dict[str, Any]:
        r"""Execute bulk operations with automatic rollback on failure.

        Operations run one at a time, in the given order. When one fails and
        ``rollback_on_error`` is true, execution stops and every document
        created earlier in the batch is deleted again, newest first. Updates,
        deletes, submits and cancels are not undone.

        Parameters:
            operations (List[Dict]): 1 to 100 operations. Each operation contains:
                - type (str): One of create, update, delete, submit, cancel
                - doctype (str): ERPNext document type
                - name (str): Document name (update, delete, submit, cancel)
                - doc (Dict): Field values of the new document (create)
                - patch (Dict): Non-empty field changes (update)
            rollback_on_error (bool): Stop and undo completed creates on the
                first failure (default: True). If False, later operations
                still run after a failure.

        Returns:
            dict: On success ``data`` contains:
                - results (List[Dict]): operation_index, success, data or error
                - rolled_back (bool): Whether a failure triggered rollback
                - completed_operations (int): Number of successful operations
                - failed_operations (int): Number of failed operations

            A malformed batch returns ``{"ok": false, "error": {"code": "FIELD_ERROR", ...}}``
            and nothing is sent to ERPNext.

        Example Usage:
            ```json
            {
                "name": "erp_bulk_run",
                "arguments": {
                    "operations": [
                        {"type": "create", "doctype": "Customer", "doc": {"customer_name": "Acme"}},
                        {"type": "update", "doctype": "Item", "name": "ITEM-001", "patch": {"disabled": 1}},
                        {"type": "submit", "doctype": "Sales Order", "name": "SO-0001"}
                    ],
                    "rollback_on_error": true
                }
            }
            ```
        """
        try:
            session = await sessions.get()
            response = await run_bulk(
                session,
                operations,
                rollback_on_error,
                retry_policy=sessions.retry_policy,
                max_operations=sessions.settings.max_bulk_operations,
            )
        except Exception as e:
            response = handle_mcp_tool_error(
                "erp_bulk_run", e, {"operations_count": len(operations), "rollback_on_error": rollback_on_error}
            )
        return response.model_dump(exclude_none=True)
