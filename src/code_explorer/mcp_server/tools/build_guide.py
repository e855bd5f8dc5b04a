"""MCP Tool: build_guide

Generates an ordered, explained walkthrough of a session's code.

Usage via MCP:
    Tool name: build_guide
    Input schema:
        - session_id (string, required)
        - include_overview (boolean, optional)
        - format (string, optional): "markdown" (default) or "json"
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Dict

from mcp import types

from code_explorer.core.types import BuildGuide
from code_explorer.mcp_server.context import ServerContext, error_result, text_result

if TYPE_CHECKING:
    from code_explorer.mcp_server.protocol_handler import ProtocolHandler

logger = logging.getLogger(__name__)

TOOL_NAME = "build_guide"
TOOL_DESCRIPTION = """Generate a step-by-step guide to understanding an indexed codebase.

Chunks are ordered so that files come after the files they import, with
more important files first. Every step carries the code and an
explanation of what it does and how it connects to the rest of the
system. Large sessions take a while: steps are explained in rate-limited
batches.
"""

TOOL_INPUT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "session_id": {
            "type": "string",
            "description": "Session id returned by index_codebase.",
        },
        "include_overview": {
            "type": "boolean",
            "description": "Prepend an AI-written project overview.",
            "default": False,
        },
        "format": {
            "type": "string",
            "enum": ["markdown", "json"],
            "default": "markdown",
        },
    },
    "required": ["session_id"],
}


class BuildGuideTool:
    def __init__(self, context: ServerContext) -> None:
        self.context = context

    def generate(self, session_id: str, include_overview: bool = False) -> BuildGuide:
        return self.context.build_guide().generate(session_id, include_overview=include_overview)

    def format_markdown(self, guide: BuildGuide) -> str:
        lines = [f"# Build guide ({guide.total_steps} steps)", ""]
        if guide.project_overview:
            lines.extend(["## Project overview", "", guide.project_overview, ""])
        for step in guide.steps:
            lines.append(
                f"## Step {step.step_number}: {step.file_path} "
                f"(lines {step.start_line}-{step.end_line})"
            )
            lines.append("")
            lines.append(step.explanation)
            lines.append("")
            lines.append(f"```{step.file_extension}\n{step.content}\n```")
            lines.append("")
        if guide.errors:
            lines.append(f"_{len(guide.errors)} step(s) used a rule-based explanation after an AI error._")
        return "\n".join(lines).rstrip()

    async def execute(
        self,
        session_id: str,
        include_overview: bool = False,
        format: str = "markdown",
    ) -> types.CallToolResult:
        logger.info(f"Executing build_guide: session={session_id}")
        if format not in ("markdown", "json"):
            return error_result(TOOL_NAME, ValueError(f"Unsupported format: {format}"))
        try:
            guide = await asyncio.to_thread(self.generate, session_id, include_overview)
        except Exception as e:
            return error_result(TOOL_NAME, e)

        if format == "json":
            return text_result(json.dumps(guide.to_dict(), ensure_ascii=False, indent=2))
        return text_result(self.format_markdown(guide))


def register_tool(protocol_handler: ProtocolHandler) -> None:
    """Register the build_guide tool with the protocol handler."""
    tool = BuildGuideTool(protocol_handler.context)

    async def handler(
        session_id: str,
        include_overview: bool = False,
        format: str = "markdown",
    ) -> types.CallToolResult:
        return await tool.execute(session_id=session_id, include_overview=include_overview, format=format)

    protocol_handler.register_tool(
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        input_schema=TOOL_INPUT_SCHEMA,
        handler=handler,
    )
    logger.info(f"Registered MCP tool: {TOOL_NAME}")
