"""MCP server exposing ERPNext bulk operations with compensating rollback."""

__version__ = "0.1.0"
