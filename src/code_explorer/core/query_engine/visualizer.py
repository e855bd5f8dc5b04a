"""Visualizer: file dependency graph of a session.

Nodes are the session's files; an edge ``a -> b`` means ``a`` imports
``b``. A single-file session yields one self-loop labelled
"Self-contained" so renderers always have an edge to draw.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from code_explorer.core.query_engine.dependency_graph import build_dependency_graph
from code_explorer.core.query_engine.session_reader import fetch_session_chunks, group_by_file

if TYPE_CHECKING:
    from code_explorer.core.settings import Settings
    from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

SELF_CONTAINED_LABEL = "Self-contained"
IMPORT_LABEL = "imports"


class CodeVisualizer:
    """Build graph data for a session."""

    def __init__(self, vector_store: BaseVectorStore) -> None:
        self.vector_store = vector_store

    def build_graph(self, session_id: str, trace: Optional[Any] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Return ``{"nodes": [...], "edges": [...]}`` for *session_id*.

        Raises:
            ValueError: If *session_id* is empty.
            LookupError: If the session has no chunks.
        """
        chunks = fetch_session_chunks(self.vector_store, session_id)
        if not chunks:
            raise LookupError(f"No code indexed for session {session_id}")

        by_file = group_by_file(chunks)
        nodes = [
            {
                "id": file_path,
                "label": file_chunks[0].file_name,
                "language": file_chunks[0].language,
                "chunk_type": file_chunks[0].chunk_type,
                "importance": file_chunks[0].importance,
                "chunk_count": len(file_chunks),
            }
            for file_path, file_chunks in by_file.items()
        ]

        edges: List[Dict[str, Any]] = []
        if len(by_file) == 1:
            only = nodes[0]["id"]
            edges.append({"from": only, "to": only, "label": SELF_CONTAINED_LABEL})
        else:
            for source, targets in build_dependency_graph(chunks).items():
                for target in sorted(targets):
                    edges.append({"from": source, "to": target, "label": IMPORT_LABEL})

        logger.debug("Graph for %s: %d nodes, %d edges", session_id, len(nodes), len(edges))
        if trace is not None:
            trace.record_stage("visualize", {"node_count": len(nodes), "edge_count": len(edges)})
        return {"nodes": nodes, "edges": edges}


def create_code_visualizer(
    settings: Settings,
    vector_store: Optional[BaseVectorStore] = None,
) -> CodeVisualizer:
    if vector_store is None:
        from code_explorer.libs.vector_store.vector_store_factory import VectorStoreFactory
        vector_store = VectorStoreFactory.create(settings)
    return CodeVisualizer(vector_store)
