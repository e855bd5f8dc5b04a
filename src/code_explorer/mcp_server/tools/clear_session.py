"""MCP Tool: clear_session

Deletes every stored chunk of a session.

Usage via MCP:
    Tool name: clear_session
    Input schema:
        - session_id (string, required)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict

from mcp import types

from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)

TOOL_NAME = "clear_session"
TOOL_DESCRIPTION = """Delete an indexed session and all of its stored chunks."""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "session_id": {
            "type": "string",
            "description": "Session id to delete.",
        },
    },
    "required": ["session_id"],
}


class ClearSessionTool:
    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def clear(self, session_id: str) -> int:
        return self.context.sessions().clear_session(session_id)

    async def execute(self, session_id: str) -> types.CallToolResult:
        logger.info(f"Executing clear_session: session={session_id}")
        try:
            removed = await asyncio.to_thread(self.clear, session_id)
        except Exception as e:
            return error_result(TOOL_NAME, e)
        if removed == 0:
            return text_result(f"Session `{session_id}` had no stored chunks.")
        return text_result(f"Cleared session `{session_id}`: {removed} chunks deleted.")


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the clear_session tool with the protocol handler."""
    tool = ClearSessionTool(protocol_handler.context)

    async def handler(session_id: str) -> types.CallToolResult:
        return await tool.execute(session_id=session_id)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
