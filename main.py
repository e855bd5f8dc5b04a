"""MCP Server entry point.

Loads and validates the configuration, then serves the code-explorer MCP
tools over stdio.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parent
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from code_explorer.core.settings import load_settings
from code_explorer.mcp_server.context import ServerContext
from code_explorer.mcp_server.server import run_stdio_server
from code_explorer.observability.logger import configure_logging, get_logger


LOGGER = get_logger(__name__)


def main() -> None:
    """Start the MCP server."""
    try:
        settings = load_settings("config/settings.yaml")
    except (FileNotFoundError, ValueError) as exc:
        LOGGER.error("Failed to load settings: %s", exc)
        raise SystemExit(1) from exc

    configure_logging(settings)
    LOGGER.info(
        "Settings loaded successfully (llm=%s, embedding=%s, vector_store=%s)",
        settings.llm.get("provider", "unknown"),
        settings.embedding.get("provider", "unknown"),
        settings.vector_store.get("provider", "unknown"),
    )

    asyncio.run(run_stdio_server(ServerContext(settings=settings)))


if __name__ == "__main__":
    main()
