"""MCP Tool: summarize_code

Summarizes one stored file, or gives an overview of the whole session
when no file is named.

Usage via MCP:
    Tool name: summarize_code
    Input schema:
        - session_id (string, required)
        - file_path (string, optional)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from mcp import types

from code_explorer.core.query_engine.summarizer import Summary
from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)

TOOL_NAME = "summarize_code"
TOOL_DESCRIPTION = """Summarize an indexed file, or the whole project.

With file_path, the file is rebuilt from its stored chunks and summarized.
Without it, a project overview (type of application, technologies,
purpose and architecture) is generated from the session.
"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "session_id": {
            "type": "string",
            "description": "Session id returned by index_codebase.",
        },
        "file_path": {
            "type": "string",
            "description": "Path of a file in the session, relative to the indexed root.",
        },
    },
    "required": ["session_id"],
}


class SummarizeCodeTool:
    """File summaries and project overviews."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def summarize(self, session_id: str, file_path: Optional[str] = None) -> Summary:
        trace = TraceContext(trace_type="query", session_id=session_id)
        trace.metadata["tool"] = TOOL_NAME
        summarizer = self.context.summarizer()
        try:
            if file_path:
                return summarizer.summarize_file(session_id, file_path, trace=trace)
            return summarizer.summarize_project(session_id, trace=trace)
        finally:
            self.context.trace_collector().collect(trace)

    def format_response(self, summary: Summary) -> str:
        if summary.file_path:
            title = f"## Summary of {summary.file_path}"
            if summary.truncated:
                title += " (truncated)"
        else:
            title = f"## Project overview ({summary.file_count} files)"
        return f"{title}\n\n{summary.summary}"

    async def execute(self, session_id: str, file_path: Optional[str] = None) -> types.CallToolResult:
        logger.info(f"Executing summarize_code: session={session_id} file={file_path}")
        try:
            summary = await asyncio.to_thread(self.summarize, session_id, file_path)
        except Exception as e:
            return error_result(TOOL_NAME, e)
        return text_result(self.format_response(summary))


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the summarize_code tool with the protocol handler."""
    tool = SummarizeCodeTool(protocol_handler.context)

    async def handler(session_id: str, file_path: Optional[str] = None) -> types.CallToolResult:
        return await tool.execute(session_id=session_id, file_path=file_path)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
