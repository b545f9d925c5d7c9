"""Tool category modules for the ERPNext MCP server.

- auth_tools: Session management (erp_auth_connect, erp_auth_whoami)
- bulk_tools: Transaction preview and bulk execution with rollback
  (erp_txn_preview, erp_bulk_run)
"""

from .auth_tools import register_auth_tools
from .bulk_tools import register_bulk_tools

__all__ = [
    "register_auth_tools",
    "register_bulk_tools",
]
