"""MCP Tool: index_codebase

Ingests a local file or directory into a session: load, chunk, annotate,
embed and store. Returns the session id to use with the query tools.

Usage via MCP:
    Tool name: index_codebase
    Input schema:
        - path (string, required): File or directory on the server host
        - session_id (string, optional): Add to an existing session
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from mcp import types

from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.ingestion.pipeline import IngestionResult
from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)


TOOL_NAME = "index_codebase"
TOOL_DESCRIPTION = """Index a local codebase (file or directory) for exploration.

Splits source files into line-ranged chunks, embeds them and stores them
under a session id. Pass the returned session_id to search_code,
chat_with_code, summarize_code, visualize_code and build_guide.
"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "path": {
            "type": "string",
            "description": "Path to a source file or directory on the server host.",
        },
        "session_id": {
            "type": "string",
            "description": "Existing session to add the files to. A new session is created when omitted.",
        },
    },
    "required": ["path"],
}


class IndexCodebaseTool:
    """Run the ingestion pipeline for one path."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def index(self, path: str, session_id: Optional[str] = None) -> IngestionResult:
        if not path or not path.strip():
            raise ValueError("path cannot be empty")

        trace = TraceContext(trace_type="ingestion")
        trace.metadata["path"] = path
        try:
            return self.context.pipeline().run(path, session_id=session_id, trace=trace)
        finally:
            self.context.trace_collector().collect(trace)

    def format_response(self, result: IngestionResult) -> str:
        lines = [
            "## Codebase indexed",
            "",
            f"- **Session ID**: `{result.session_id}`",
            f"- **Files**: {len(result.files)}",
            f"- **Chunks**: {result.chunk_count}",
            f"- **Stored vectors**: {len(result.vector_ids)}",
        ]
        if result.failed_chunks:
            lines.append(f"- **Chunks dropped (embedding failed)**: {result.failed_chunks}")
        return "\n".join(lines)

    async def execute(self, path: str, session_id: Optional[str] = None) -> types.CallToolResult:
        logger.info(f"Executing index_codebase: path={path}")
        try:
            result = await asyncio.to_thread(self.index, path, session_id)
        except Exception as e:
            return error_result(TOOL_NAME, e)

        if not result.success:
            return types.CallToolResult(
                content=[types.TextContent(type="text", text=f"Error: indexing failed: {result.error}")],
                isError=True,
            )
        return text_result(self.format_response(result))


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the index_codebase tool with the protocol handler."""
    tool = IndexCodebaseTool(protocol_handler.context)

    async def handler(path: str, session_id: Optional[str] = None) -> types.CallToolResult:
        return await tool.execute(path=path, session_id=session_id)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
