"""Dense Retriever for session-scoped semantic code search.

This module implements the CodeSearch component that embeds a query and
retrieves the most similar chunks of one session from the vector store.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from code_explorer.core.types import RetrievalResult

if TYPE_CHECKING:
    from code_explorer.core.settings import Settings
    from code_explorer.libs.embedding.base_embedding import BaseEmbedding
    from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


class CodeSearch:
    """Dense retriever using embedding-based semantic search.

    This class performs semantic retrieval by:
    1. Embedding the query using the configured embedding client
    2. Querying the vector store, filtered to one session
    3. Returning normalized RetrievalResult objects

    Attributes:
        embedding_client: The embedding provider for query vectorization.
        vector_store: The vector store for similarity search.
        default_top_k: Default number of results to return.
        max_top_k: Upper bound applied to any requested top_k.

    Example:
        >>> search = create_code_search(settings)
        >>> results = search.search(session_id, "where is the router configured?")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        embedding_client: Optional[BaseEmbedding] = None,
        vector_store: Optional[BaseVectorStore] = None,
        default_top_k: int = 5,
        max_top_k: int = 20,
    ) -> None:
        self.embedding_client = embedding_client
        self.vector_store = vector_store

        self.default_top_k = default_top_k
        self.max_top_k = max_top_k
        if settings is not None:
            retrieval_config = settings.retrieval
            self.default_top_k = int(retrieval_config.get("top_k", default_top_k))
            self.max_top_k = int(retrieval_config.get("max_top_k", max_top_k))

        logger.info(f"CodeSearch initialized with default_top_k={self.default_top_k}")

    def search(
        self,
        session_id: str,
        query: str,
        top_k: Optional[int] = None,
        filters: Optional[Dict[str, Any]] = None,
        trace: Optional[Any] = None,
    ) -> List[RetrievalResult]:
        """Retrieve the chunks of *session_id* most similar to *query*.

        Args:
            session_id: Session to search. Must not be empty.
            query: The search query string. Must not be empty.
            top_k: Maximum number of results. If None, uses default_top_k.
            filters: Extra metadata filters (e.g., {"chunk_type": "api"}).
            trace: Optional TraceContext.

        Returns:
            List of RetrievalResult objects, sorted by similarity (descending).

        Raises:
            ValueError: If the query or session id is empty, or top_k is not positive.
            RuntimeError: If dependencies are missing or retrieval fails.
        """
        self._validate_query(query)
        if not session_id or not str(session_id).strip():
            raise ValueError("session_id cannot be empty")
        self._validate_dependencies()

        effective_top_k = top_k if top_k is not None else self.default_top_k
        if effective_top_k <= 0:
            raise ValueError(f"top_k must be positive, got {effective_top_k}")
        effective_top_k = min(effective_top_k, self.max_top_k)

        scoped_filters: Dict[str, Any] = dict(filters or {})
        scoped_filters["session_id"] = session_id

        logger.debug(f"Searching session={session_id} query='{query[:50]}...', top_k={effective_top_k}")

        # Step 1: Embed the query
        try:
            query_vector = self.embedding_client.embed([query], trace=trace)[0]
        except Exception as e:
            raise RuntimeError(
                f"Failed to embed query: {e}. "
                "Check embedding client configuration and connectivity."
            ) from e

        # Step 2: Query the vector store
        try:
            raw_results = self.vector_store.query(
                vector=query_vector,
                top_k=effective_top_k,
                filters=scoped_filters,
                trace=trace,
            )
        except Exception as e:
            raise RuntimeError(
                f"Failed to query vector store: {e}. "
                "Check vector store configuration and data availability."
            ) from e

        results = self._transform_results(raw_results)
        if trace is not None:
            trace.record_stage("search", {
                "session_id": session_id,
                "top_k": effective_top_k,
                "result_count": len(results),
            })

        logger.debug(f"Retrieved {len(results)} results for query")
        return results

    def _validate_query(self, query: str) -> None:
        if not isinstance(query, str):
            raise ValueError(f"Query must be a string, got {type(query).__name__}")
        if not query.strip():
            raise ValueError("Query cannot be empty or whitespace-only")

    def _validate_dependencies(self) -> None:
        if self.embedding_client is None:
            raise RuntimeError("CodeSearch requires an embedding_client.")
        if self.vector_store is None:
            raise RuntimeError("CodeSearch requires a vector_store.")

    def _transform_results(
        self,
        raw_results: List[Dict[str, Any]],
    ) -> List[RetrievalResult]:
        """Transform raw vector store results to RetrievalResult objects."""
        results = []
        for raw in raw_results:
            try:
                result = RetrievalResult(
                    chunk_id=str(raw.get("id", "")),
                    score=float(raw.get("score", 0.0)),
                    text=str(raw.get("text", "")),
                    metadata=raw.get("metadata", {}),
                )
                results.append(result)
            except (ValueError, TypeError) as e:
                logger.warning(
                    f"Failed to transform result {raw.get('id', 'unknown')}: {e}. "
                    "Skipping this result."
                )
                continue

        results.sort(key=lambda r: r.score, reverse=True)
        return results


def create_code_search(
    settings: Settings,
    embedding_client: Optional[BaseEmbedding] = None,
    vector_store: Optional[BaseVectorStore] = None,
) -> CodeSearch:
    """Factory function to create a CodeSearch with optional dependency injection.

    Dependencies that are not provided are created from their factories.
    """
    # Lazy import to avoid circular dependencies
    if embedding_client is None:
        from code_explorer.libs.embedding.embedding_factory import EmbeddingFactory
        embedding_client = EmbeddingFactory.create(settings)

    if vector_store is None:
        from code_explorer.libs.vector_store.vector_store_factory import VectorStoreFactory
        vector_store = VectorStoreFactory.create(settings)

    return CodeSearch(
        settings=settings,
        embedding_client=embedding_client,
        vector_store=vector_store,
    )
