"""MCP Server for ERPNext bulk operations.

This module builds the FastMCP server, registers the authentication and bulk
tools against one ``SessionStore`` and runs it over stdio or HTTP SSE.
"""

import argparse
import sys

from mcp.server import FastMCP

from .config import Settings
from .config import get_settings
from .logger_config import configure_logging
from .metrics_config import ensure_metrics_initialized
from .metrics_config import get_metrics_summary
from .session import SessionStore
from .tools import register_auth_tools
from .tools import register_bulk_tools

SERVER_NAME = "ERPNextTools"


def create_server(settings: Settings | None = None) -> FastMCP:
    """Create a server with its own session store and all tools registered."""
    settings = settings or get_settings()
    mcp_server = FastMCP(SERVER_NAME)
    sessions = SessionStore(settings)

    register_auth_tools(mcp_server, sessions)
    register_bulk_tools(mcp_server, sessions)
    return mcp_server


def main():
    """Run the main entry point for the server with argument parsing."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="ERPNext MCP Server")
    parser.add_argument(
        "transport",
        choices=["sse", "stdio"],
        default="stdio",
        nargs="?",
        help="Transport: 'sse' for HTTP SSE or 'stdio' for standard I/O (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default=settings.mcp_host,
        help=f"Host to bind to for SSE transport (default: {settings.mcp_host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.mcp_port,
        help=f"Port to bind to for SSE transport (default: {settings.mcp_port})",
    )
    args = parser.parse_args()

    configure_logging(settings.log_level, settings.structured_logging)
    if settings.enable_metrics:
        ensure_metrics_initialized()

    mcp_server = create_server(settings)

    # stdout carries the stdio protocol, so status goes to stderr
    print(f"ERPNext MCP server starting. Tools exposed by '{mcp_server.name}'", file=sys.stderr)
    if settings.erpnext_configured:
        print(f"Using configured ERPNext site: {settings.erpnext_base_url}", file=sys.stderr)
    else:
        print("No ERPNext credentials configured; call erp_auth_connect first.", file=sys.stderr)
    print(f"Metrics: {get_metrics_summary()['status']}", file=sys.stderr)

    if args.transport == "stdio":
        print("MCP server running with stdio transport. Waiting for client connection...", file=sys.stderr)
        mcp_server.run(transport="stdio")
    else:
        print(f"MCP server running with HTTP SSE transport on {args.host}:{args.port}", file=sys.stderr)
        print(f"SSE endpoint: http://{args.host}:{args.port}/sse", file=sys.stderr)
        mcp_server.settings.host = args.host
        mcp_server.settings.port = args.port
        mcp_server.run(transport="sse")


if __name__ == "__main__":
    main()
