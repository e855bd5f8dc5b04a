"""code-explorer: chunk, embed and explore codebases over MCP."""

__version__ = "0.1.0"
