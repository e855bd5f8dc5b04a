"""MCP Tool: chat_with_code

Answers a question about an indexed codebase from its most relevant chunks.

Usage via MCP:
    Tool name: chat_with_code
    Input schema:
        - session_id (string, required)
        - message (string, required)
        - history (array, optional): earlier {role, content} turns
        - top_k (integer, optional)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from mcp import types

from code_explorer.core.query_engine.chat_engine import ChatAnswer
from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)

TOOL_NAME = "chat_with_code"
TOOL_DESCRIPTION = """Ask a question about an indexed codebase.

The answer is grounded on the most relevant chunks of the session; the
files it drew on are listed under the answer.
"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "session_id": {
            "type": "string",
            "description": "Session id returned by index_codebase.",
        },
        "message": {
            "type": "string",
            "description": "Question about the code.",
        },
        "history": {
            "type": "array",
            "description": "Earlier conversation turns, oldest first.",
            "items": {
                "type": "object",
                "properties": {
                    "role": {"type": "string", "enum": ["user", "assistant"]},
                    "content": {"type": "string"},
                },
                "required": ["role", "content"],
            },
        },
        "top_k": {
            "type": "integer",
            "description": "Number of context chunks to retrieve.",
            "default": 3,
            "minimum": 1,
        },
    },
    "required": ["session_id", "message"],
}


class ChatWithCodeTool:
    """Retrieval-augmented chat over one session."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def ask(
        self,
        session_id: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
        top_k: Optional[int] = None,
    ) -> ChatAnswer:
        trace = TraceContext(trace_type="query", session_id=session_id)
        trace.metadata["tool"] = TOOL_NAME
        try:
            return self.context.chat().ask(session_id, message, history=history, top_k=top_k, trace=trace)
        finally:
            self.context.trace_collector().collect(trace)

    def format_response(self, answer: ChatAnswer) -> str:
        if not answer.sources:
            return answer.answer
        sources = "\n".join(
            f"- {source.file_path} (lines {source.metadata.get('start_line')}-{source.metadata.get('end_line')})"
            for source in answer.sources
        )
        return f"{answer.answer}\n\n**Sources**\n{sources}"

    async def execute(
        self,
        session_id: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
        top_k: Optional[int] = None,
    ) -> types.CallToolResult:
        logger.info(f"Executing chat_with_code: session={session_id}")
        try:
            answer = await asyncio.to_thread(self.ask, session_id, message, history, top_k)
        except Exception as e:
            return error_result(TOOL_NAME, e)
        return text_result(self.format_response(answer))


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the chat_with_code tool with the protocol handler."""
    tool = ChatWithCodeTool(protocol_handler.context)

    async def handler(
        session_id: str,
        message: str,
        history: Optional[List[Dict[str, str]]] = None,
        top_k: Optional[int] = None,
    ) -> types.CallToolResult:
        return await tool.execute(session_id=session_id, message=message, history=history, top_k=top_k)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
