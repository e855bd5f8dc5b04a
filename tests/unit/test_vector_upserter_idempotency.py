"""Unit tests for VectorUpserter idempotency and validation.

Test Coverage:
1. Idempotency: re-upserting the same chunks keeps the record count
2. Record shape: text, vector and flat metadata
3. Write batching
4. Error handling: validation and store failures
"""

from typing import List
from unittest.mock import Mock

import pytest

from code_explorer.core.types import CodeChunk
from code_explorer.ingestion.storage.vector_upserter import VectorUpserter
from code_explorer.libs.vector_store.base_vector_store import VectorStoreError


# ============================================================================
# Fixtures
# ============================================================================

def _chunks(count: int, session_id: str = "s1") -> List[CodeChunk]:
    return [
        CodeChunk(
            id=f"id-{i}",
            session_id=session_id,
            file_path="app/main.py",
            text=f"print({i})",
            start_line=i + 1,
            end_line=i + 1,
            chunk_index=i,
            imports=["os"],
        )
        for i in range(count)
    ]


def _vectors(count: int) -> List[List[float]]:
    return [[float(i), 1.0] for i in range(count)]


# ============================================================================
# Tests
# ============================================================================

class TestIdempotency:

    def test_repeated_upsert_keeps_count(self, vector_store) -> None:
        upserter = VectorUpserter(vector_store)

        first = upserter.upsert(_chunks(3), _vectors(3))
        second = upserter.upsert(_chunks(3), _vectors(3))

        assert first == second == ["id-0", "id-1", "id-2"]
        assert vector_store.count() == 3

    def test_record_shape(self, vector_store) -> None:
        VectorUpserter(vector_store).upsert(_chunks(1), _vectors(1))

        record = vector_store.records["id-0"]
        assert record["text"] == "print(0)"
        assert record["vector"] == [0.0, 1.0]
        assert record["metadata"]["session_id"] == "s1"
        assert record["metadata"]["file_path"] == "app/main.py"
        assert record["metadata"]["imports"] == "os"


class TestBatching:

    def test_writes_are_split(self, vector_store) -> None:
        VectorUpserter(vector_store, write_batch_size=2).upsert(_chunks(5), _vectors(5))

        assert vector_store.upsert_calls == 3
        assert vector_store.count() == 5

    def test_invalid_write_batch_size(self, vector_store) -> None:
        with pytest.raises(ValueError):
            VectorUpserter(vector_store, write_batch_size=0)


class TestValidation:

    def test_length_mismatch(self, vector_store) -> None:
        with pytest.raises(ValueError, match="must match"):
            VectorUpserter(vector_store).upsert(_chunks(2), _vectors(1))

    def test_empty_input(self, vector_store) -> None:
        with pytest.raises(ValueError, match="empty"):
            VectorUpserter(vector_store).upsert([], [])

    def test_missing_session_id(self, vector_store) -> None:
        with pytest.raises(ValueError, match="session_id"):
            VectorUpserter(vector_store).upsert(_chunks(1, session_id=""), _vectors(1))

    def test_duplicate_ids(self, vector_store) -> None:
        chunks = _chunks(2)
        chunks[1].id = chunks[0].id
        with pytest.raises(ValueError, match="Duplicate"):
            VectorUpserter(vector_store).upsert(chunks, _vectors(2))

    def test_store_failure_is_wrapped(self) -> None:
        store = Mock()
        store.upsert.side_effect = VectorStoreError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            VectorUpserter(store).upsert(_chunks(1), _vectors(1))
