"""MCP Server entry point for stdio transport.

stdout carries protocol messages only; all logs go to stderr.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from mcp.server.stdio import stdio_server

from code_explorer import __version__
from code_explorer.mcp_server.context import ServerContext
from code_explorer.mcp_server.protocol_handler import ProtocolHandler, create_mcp_server
from code_explorer.observability.logger import get_logger

SERVER_NAME = "code-explorer"
SERVER_VERSION = __version__

logger = get_logger(__name__)


async def run_stdio_server(context: Optional[ServerContext] = None) -> None:
    """Serve MCP requests over stdio until the client disconnects."""
    protocol_handler = ProtocolHandler(
        server_name=SERVER_NAME,
        server_version=SERVER_VERSION,
        context=context or ServerContext(),
    )
    server = create_mcp_server(SERVER_NAME, SERVER_VERSION, protocol_handler=protocol_handler)

    logger.info("Starting MCP server (stdio transport).")
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        logger.info("MCP server shutting down.")


def main() -> int:
    """Entry point for stdio MCP server."""
    asyncio.run(run_stdio_server())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
