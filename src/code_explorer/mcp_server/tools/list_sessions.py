"""MCP Tool: list_sessions

Lists indexed sessions, or the files of one session.

Usage via MCP:
    Tool name: list_sessions
    Input schema:
        - session_id (string, optional): list this session's files instead
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from mcp import types

from code_explorer.ingestion.session_manager import FileInfo, SessionInfo
from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)

TOOL_NAME = "list_sessions"
TOOL_DESCRIPTION = """List indexed codebase sessions with their chunk and file counts.

Pass session_id to list the files of that session instead.
"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "session_id": {
            "type": "string",
            "description": "List the files of this session.",
        },
    },
    "required": [],
}


class ListSessionsTool:
    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def format_sessions(self, sessions: List[SessionInfo]) -> str:
        if not sessions:
            return "No indexed sessions found."
        lines = [f"## Indexed sessions ({len(sessions)} total)", ""]
        for i, info in enumerate(sessions, 1):
            lines.append(f"{i}. `{info.session_id}` - {info.file_count} files, {info.chunk_count} chunks")
        return "\n".join(lines)

    def format_files(self, session_id: str, files: List[FileInfo]) -> str:
        lines = [f"## Files in `{session_id}` ({len(files)} total)", ""]
        for info in files:
            lines.append(f"- {info.file_path} ({info.language}, {info.chunk_type}, {info.chunk_count} chunks)")
        return "\n".join(lines)

    def render(self, session_id: Optional[str] = None) -> str:
        sessions = self.context.sessions()
        if session_id:
            return self.format_files(session_id, sessions.list_files(session_id))
        return self.format_sessions(sessions.list_sessions())

    async def execute(self, session_id: Optional[str] = None) -> types.CallToolResult:
        logger.info(f"Executing list_sessions (session_id={session_id})")
        try:
            text = await asyncio.to_thread(self.render, session_id)
        except Exception as e:
            return error_result(TOOL_NAME, e)
        return text_result(text)


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the list_sessions tool with the protocol handler."""
    tool = ListSessionsTool(protocol_handler.context)

    async def handler(session_id: Optional[str] = None) -> types.CallToolResult:
        return await tool.execute(session_id=session_id)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
