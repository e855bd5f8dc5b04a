"""Shared, lazily built components for MCP tools.

All tools of one server share a single ``ServerContext`` so that they
talk to the same vector store client and providers. Nothing is built
until a tool first needs it, so listing tools never touches settings or
network services.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Optional

from mcp import types

from code_explorer.observability.logger import get_logger

if TYPE_CHECKING:
    from code_explorer.core.query_engine import (
        BuildGuideGenerator,
        CodeChat,
        CodeSearch,
        CodeSummarizer,
        CodeVisualizer,
    )
    from code_explorer.core.settings import Settings
    from code_explorer.core.trace.trace_collector import TraceCollector
    from code_explorer.ingestion.pipeline import IngestionPipeline
    from code_explorer.ingestion.session_manager import SessionManager
    from code_explorer.libs.embedding.base_embedding import BaseEmbedding
    from code_explorer.libs.llm.base_llm import BaseLLM
    from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

logger = get_logger(__name__)

# Errors whose message is safe and useful to show to the caller.
USER_ERRORS = (ValueError, LookupError)


def text_result(text: str) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=False,
    )


def error_result(tool_name: str, exc: Exception) -> types.CallToolResult:
    """Build an ``isError`` result; only user errors carry their message."""
    if isinstance(exc, USER_ERRORS):
        text = f"Error: {exc}"
    else:
        logger.error("Tool %s failed: %s", tool_name, exc, exc_info=exc)
        text = f"Error: {tool_name} failed ({type(exc).__name__}). See server logs for details."
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=True,
    )


class ServerContext:
    """Lazily constructed settings, providers and query engines.

    Args:
        settings: Application settings. If None, loaded from default path.
        vector_store: Optional pre-built vector store.
        embedding: Optional pre-built embedding provider.
        llm: Optional pre-built chat LLM.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        vector_store: Optional[BaseVectorStore] = None,
        embedding: Optional[BaseEmbedding] = None,
        llm: Optional[BaseLLM] = None,
    ) -> None:
        self._settings = settings
        self._vector_store = vector_store
        self._embedding = embedding
        self._llm = llm
        self._cache: dict[str, Any] = {}
        self._lock = threading.RLock()

    @property
    def settings(self) -> Settings:
        with self._lock:
            if self._settings is None:
                from code_explorer.core.settings import load_settings
                self._settings = load_settings()
            return self._settings

    @property
    def vector_store(self) -> BaseVectorStore:
        with self._lock:
            if self._vector_store is None:
                from code_explorer.libs.vector_store.vector_store_factory import VectorStoreFactory
                self._vector_store = VectorStoreFactory.create(self.settings)
            return self._vector_store

    @property
    def embedding(self) -> BaseEmbedding:
        with self._lock:
            if self._embedding is None:
                from code_explorer.libs.embedding.embedding_factory import EmbeddingFactory
                self._embedding = EmbeddingFactory.create(self.settings)
            return self._embedding

    @property
    def llm(self) -> BaseLLM:
        with self._lock:
            if self._llm is None:
                from code_explorer.libs.llm.llm_factory import LLMFactory
                self._llm = LLMFactory.create(self.settings)
            return self._llm

    def _cached(self, key: str, build: Any) -> Any:
        with self._lock:
            if key not in self._cache:
                self._cache[key] = build()
            return self._cache[key]

    def search(self) -> CodeSearch:
        from code_explorer.core.query_engine import CodeSearch
        return self._cached("search", lambda: CodeSearch(
            settings=self.settings,
            embedding_client=self.embedding,
            vector_store=self.vector_store,
        ))

    def chat(self) -> CodeChat:
        from code_explorer.core.query_engine import create_code_chat
        return self._cached("chat", lambda: create_code_chat(self.settings, self.search(), self.llm))

    def summarizer(self) -> CodeSummarizer:
        from code_explorer.core.query_engine import create_code_summarizer
        return self._cached("summarizer", lambda: create_code_summarizer(self.settings, self.vector_store, self.llm))

    def visualizer(self) -> CodeVisualizer:
        from code_explorer.core.query_engine import create_code_visualizer
        return self._cached("visualizer", lambda: create_code_visualizer(self.settings, self.vector_store))

    def build_guide(self) -> BuildGuideGenerator:
        from code_explorer.core.query_engine import create_build_guide_generator
        return self._cached("build_guide", lambda: create_build_guide_generator(
            self.settings, self.vector_store, self.llm,
        ))

    def sessions(self) -> SessionManager:
        from code_explorer.ingestion.session_manager import SessionManager
        return self._cached("sessions", lambda: SessionManager(self.vector_store))

    def pipeline(self) -> IngestionPipeline:
        from code_explorer.ingestion.pipeline import IngestionPipeline
        return self._cached("pipeline", lambda: IngestionPipeline(
            self.settings,
            embedding=self.embedding,
            vector_store=self.vector_store,
        ))

    def trace_collector(self) -> TraceCollector:
        from code_explorer.core.trace.trace_collector import TraceCollector
        return self._cached("trace_collector", lambda: TraceCollector.from_settings(self.settings))
