"""
MCP Tools.

One module per tool; each defines ``TOOL_NAME``, ``TOOL_DESCRIPTION``,
``TOOL_INPUT_SCHEMA`` and ``register_tool``.
"""

__all__ = []
