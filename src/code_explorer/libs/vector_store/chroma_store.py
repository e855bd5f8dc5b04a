"""ChromaDB-backed vector store.

Uses a local ``PersistentClient`` by default, or an ``HttpClient`` when
``vector_store.host`` is configured. All chunks live in one cosine-space
collection; sessions are separated by the ``session_id`` metadata field.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from code_explorer.core.settings import resolve_path
from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore, VectorStoreError

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "code_embeddings"
_PAGE_SIZE = 1000


def build_where(filters: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Translate an equality map into a Chroma ``where`` clause.

    Chroma rejects an empty ``where`` and requires ``$and`` for more than
    one condition.
    """
    if not filters:
        return None
    clauses = [{key: {"$eq": value}} for key, value in sorted(filters.items())]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class ChromaVectorStore(BaseVectorStore):
    """Vector store provider backed by ChromaDB.

    Args:
        settings: Application settings with a ``vector_store`` section.
        collection_name: Optional override of ``vector_store.collection_name``.
        client: Pre-built Chroma client, mainly for tests.
    """

    def __init__(
        self,
        settings: Any,
        collection_name: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        config = settings.vector_store
        self.collection_name = collection_name or config.get("collection_name") or DEFAULT_COLLECTION
        self.persist_directory = str(resolve_path(config.get("persist_directory", "./data/db/chroma")))
        self.host = config.get("host")
        self.port = int(config.get("port", 8000))
        self._client = client
        self._collection: Any = None

    def _create_client(self) -> Any:
        try:
            import chromadb
            from chromadb.config import Settings as ChromaSettings
        except ImportError as e:
            raise ImportError(
                "chromadb package is required for the chroma vector store. "
                "Install it with: pip install chromadb"
            ) from e

        chroma_settings = ChromaSettings(anonymized_telemetry=False)
        if self.host:
            logger.info("Connecting to Chroma server at %s:%s", self.host, self.port)
            return chromadb.HttpClient(host=self.host, port=self.port, settings=chroma_settings)

        logger.info("Opening Chroma persistent store at %s", self.persist_directory)
        return chromadb.PersistentClient(path=self.persist_directory, settings=chroma_settings)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    @property
    def collection(self) -> Any:
        if self._collection is None:
            try:
                self._collection = self.client.get_or_create_collection(
                    self.collection_name, metadata={"hnsw:space": "cosine"}
                )
            except Exception as e:
                raise VectorStoreError(
                    f"Failed to open collection '{self.collection_name}': {e}"
                ) from e
        return self._collection

    def upsert(self, records: List[Dict[str, Any]], trace: Optional[Any] = None) -> None:
        self.validate_records(records)
        try:
            self.collection.upsert(
                ids=[r["id"] for r in records],
                embeddings=[list(r["vector"]) for r in records],
                documents=[r.get("text", "") for r in records],
                metadatas=[dict(r.get("metadata") or {}) for r in records],
            )
        except Exception as e:
            raise VectorStoreError(f"Chroma upsert failed: {e}") from e

        if trace is not None:
            trace.record_stage("vector_upsert", {
                "provider": "chroma",
                "collection": self.collection_name,
                "record_count": len(records),
            })

    def query(
        self,
        vector: List[float],
        top_k: int = 10,
        filters: Optional[Dict[str, Any]] = None,
        trace: Optional[Any] = None,
    ) -> List[Dict[str, Any]]:
        self.validate_query_vector(vector, top_k)
        try:
            raw = self.collection.query(
                query_embeddings=[list(vector)],
                n_results=top_k,
                where=build_where(filters),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            raise VectorStoreError(f"Chroma query failed: {e}") from e

        ids = (raw.get("ids") or [[]])[0]
        documents = (raw.get("documents") or [[]])[0] or [""] * len(ids)
        metadatas = (raw.get("metadatas") or [[]])[0] or [{}] * len(ids)
        distances = (raw.get("distances") or [[]])[0] or [1.0] * len(ids)

        results = [
            {
                "id": record_id,
                # cosine distance = 1 - cosine similarity
                "score": 1.0 - float(distance),
                "text": document or "",
                "metadata": dict(metadata or {}),
            }
            for record_id, document, metadata, distance in zip(ids, documents, metadatas, distances)
        ]

        if trace is not None:
            trace.record_stage("vector_query", {
                "provider": "chroma",
                "top_k": top_k,
                "filters": dict(filters or {}),
                "result_count": len(results),
            })
        return results

    def _get(self, where: Optional[Dict[str, Any]], include: List[str], limit: Optional[int]) -> Dict[str, List[Any]]:
        collected: Dict[str, List[Any]] = {"ids": [], "documents": [], "metadatas": []}
        offset = 0
        while limit is None or len(collected["ids"]) < limit:
            page_size = _PAGE_SIZE if limit is None else min(_PAGE_SIZE, limit - len(collected["ids"]))
            try:
                page = self.collection.get(where=where, include=include, limit=page_size, offset=offset)
            except Exception as e:
                raise VectorStoreError(f"Chroma get failed: {e}") from e
            page_ids = page.get("ids") or []
            collected["ids"].extend(page_ids)
            collected["documents"].extend(page.get("documents") or [""] * len(page_ids))
            collected["metadatas"].extend(page.get("metadatas") or [{}] * len(page_ids))
            if len(page_ids) < page_size:
                break
            offset += len(page_ids)
        return collected

    def get_by_filter(
        self,
        filters: Dict[str, Any],
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        raw = self._get(build_where(filters), ["documents", "metadatas"], limit)
        return [
            {"id": record_id, "text": document or "", "metadata": dict(metadata or {})}
            for record_id, document, metadata in zip(raw["ids"], raw["documents"], raw["metadatas"])
        ]

    def delete_by_filter(self, filters: Dict[str, Any]) -> int:
        if not filters:
            raise ValueError("Refusing to delete with an empty filter")
        ids = self._get(build_where(filters), [], None)["ids"]
        if not ids:
            return 0
        try:
            self.collection.delete(ids=ids)
        except Exception as e:
            raise VectorStoreError(f"Chroma delete failed: {e}") from e
        logger.info("Deleted %d records matching %s", len(ids), filters)
        return len(ids)

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        if not filters:
            try:
                return int(self.collection.count())
            except Exception as e:
                raise VectorStoreError(f"Chroma count failed: {e}") from e
        return len(self._get(build_where(filters), [], None)["ids"])

    def list_values(self, field: str) -> Dict[str, int]:
        metadatas = self._get(None, ["metadatas"], None)["metadatas"]
        counts = Counter(
            str(metadata[field]) for metadata in metadatas if metadata and field in metadata
        )
        return dict(counts)

    def build_index(self, trace: Optional[Any] = None) -> None:
        # HNSW indexing happens on write; opening the collection is enough.
        _ = self.collection

    def is_ready(self) -> bool:
        try:
            self.client.heartbeat()
        except Exception as e:
            logger.debug("Chroma heartbeat failed: %s", e)
            return False
        return True
