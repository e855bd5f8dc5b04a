"""MCP Tool: visualize_code

Returns the file dependency graph of a session as JSON.

Usage via MCP:
    Tool name: visualize_code
    Input schema:
        - session_id (string, required)
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List

from mcp import types

from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)

TOOL_NAME = "visualize_code"
TOOL_DESCRIPTION = """Get the file dependency graph of an indexed codebase.

Returns JSON with "nodes" (one per file: id, label, language, chunk_type,
importance, chunk_count) and "edges" ({from, to, label}) where an edge
means the source file imports the target file.
"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "session_id": {
            "type": "string",
            "description": "Session id returned by index_codebase.",
        },
    },
    "required": ["session_id"],
}


class VisualizeCodeTool:
    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def build_graph(self, session_id: str) -> Dict[str, List[Dict[str, Any]]]:
        return self.context.visualizer().build_graph(session_id)

    async def execute(self, session_id: str) -> types.CallToolResult:
        logger.info(f"Executing visualize_code: session={session_id}")
        try:
            graph = await asyncio.to_thread(self.build_graph, session_id)
        except Exception as e:
            return error_result(TOOL_NAME, e)
        return text_result(json.dumps(graph, ensure_ascii=False, indent=2))


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the visualize_code tool with the protocol handler."""
    tool = VisualizeCodeTool(protocol_handler.context)

    async def handler(session_id: str) -> types.CallToolResult:
        return await tool.execute(session_id=session_id)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
