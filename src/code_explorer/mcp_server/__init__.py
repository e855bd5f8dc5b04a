"""
MCP Server Module.

Exposes the ingestion pipeline and the query modes as MCP tools over stdio.
"""

__all__ = []
