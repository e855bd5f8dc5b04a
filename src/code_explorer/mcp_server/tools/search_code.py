"""MCP Tool: search_code

Semantic search over the chunks of one session.

Usage via MCP:
    Tool name: search_code
    Input schema:
        - session_id (string, required)
        - query (string, required)
        - top_k (integer, optional)
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from mcp import types

from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.core.types import RetrievalResult
from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)

# Longer chunk texts are cut in the response.
MAX_SNIPPET_CHARS = 1500

TOOL_NAME = "search_code"
TOOL_DESCRIPTION = """Search an indexed codebase by meaning.

Returns the most relevant code chunks of the session with their file
paths, line ranges and similarity scores.
"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "session_id": {
            "type": "string",
            "description": "Session id returned by index_codebase.",
        },
        "query": {
            "type": "string",
            "description": "Natural-language or code query.",
        },
        "top_k": {
            "type": "integer",
            "description": "Maximum number of results to return.",
            "default": 5,
            "minimum": 1,
        },
    },
    "required": ["session_id", "query"],
}


class SearchCodeTool:
    """Session-scoped semantic search."""

    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def search(self, session_id: str, query: str, top_k: Optional[int] = None) -> List[RetrievalResult]:
        trace = TraceContext(trace_type="query", session_id=session_id)
        trace.metadata["tool"] = TOOL_NAME
        try:
            return self.context.search().search(session_id, query, top_k=top_k, trace=trace)
        finally:
            self.context.trace_collector().collect(trace)

    def format_response(self, query: str, results: List[RetrievalResult]) -> str:
        if not results:
            return f"No results found for: {query}"

        lines = [f"## Results for: {query}", ""]
        for index, result in enumerate(results, 1):
            metadata = result.metadata
            language = metadata.get("language", "")
            snippet = result.text
            if len(snippet) > MAX_SNIPPET_CHARS:
                snippet = snippet[:MAX_SNIPPET_CHARS] + "\n..."
            lines.append(
                f"### [{index}] {result.file_path} "
                f"(lines {metadata.get('start_line')}-{metadata.get('end_line')}, score {result.score:.3f})"
            )
            if metadata.get("explanation"):
                lines.append(str(metadata["explanation"]))
            lines.append(f"```{language}\n{snippet}\n```")
            lines.append("")
        return "\n".join(lines).rstrip()

    async def execute(self, session_id: str, query: str, top_k: Optional[int] = None) -> types.CallToolResult:
        logger.info(f"Executing search_code: session={session_id} query='{query[:50]}'")
        try:
            results = await asyncio.to_thread(self.search, session_id, query, top_k)
        except Exception as e:
            return error_result(TOOL_NAME, e)
        return text_result(self.format_response(query, results))


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the search_code tool with the protocol handler."""
    tool = SearchCodeTool(protocol_handler.context)

    async def handler(session_id: str, query: str, top_k: Optional[int] = None) -> types.CallToolResult:
        return await tool.execute(session_id=session_id, query=query, top_k=top_k)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
