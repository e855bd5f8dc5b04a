"""Vector Upserter: writes embedded chunks to the vector store.

Chunk ids are assigned by the chunker and are deterministic, so writing
the same content twice overwrites the same records. The upserter checks
that every chunk carries a session id and that ids are unique within
the write.
"""

from typing import Any, Dict, List, Optional

from code_explorer.core.types import CodeChunk
from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

# Chroma caps a single write; stay well under it.
DEFAULT_WRITE_BATCH = 500


class VectorUpserter:
    """Turn ``(chunk, vector)`` pairs into store records and upsert them.

    Args:
        vector_store: Target store.
        write_batch_size: Records per ``upsert`` call.
    """

    def __init__(self, vector_store: BaseVectorStore, write_batch_size: int = DEFAULT_WRITE_BATCH):
        if write_batch_size <= 0:
            raise ValueError(f"write_batch_size must be positive, got {write_batch_size}")
        self.vector_store = vector_store
        self.write_batch_size = write_batch_size

    @staticmethod
    def build_record(chunk: CodeChunk, vector: List[float]) -> Dict[str, Any]:
        return {
            "id": chunk.id,
            "vector": vector,
            "text": chunk.text,
            "metadata": chunk.to_metadata(),
        }

    def upsert(
        self,
        chunks: List[CodeChunk],
        vectors: List[List[float]],
        trace: Optional[Any] = None,
    ) -> List[str]:
        """Upsert chunks with their vectors.

        Returns:
            Stored ids, in input order.

        Raises:
            ValueError: If lengths differ, the input is empty, a chunk has
                no session id, or ids repeat.
            RuntimeError: If the vector store write fails.
        """
        if len(chunks) != len(vectors):
            raise ValueError(
                f"Chunk count ({len(chunks)}) must match vector count ({len(vectors)})"
            )
        if not chunks:
            raise ValueError("Cannot upsert empty chunks list")

        seen: set[str] = set()
        for chunk in chunks:
            if not chunk.session_id:
                raise ValueError(f"Chunk {chunk.id} has no session_id")
            if chunk.id in seen:
                raise ValueError(f"Duplicate chunk id in upsert: {chunk.id}")
            seen.add(chunk.id)

        records = [self.build_record(chunk, vector) for chunk, vector in zip(chunks, vectors)]
        for start in range(0, len(records), self.write_batch_size):
            try:
                self.vector_store.upsert(records[start:start + self.write_batch_size], trace=trace)
            except Exception as e:
                raise RuntimeError(f"Vector store upsert failed: {e}") from e

        return [record["id"] for record in records]
