"""Abstract base class for VectorStore providers.

The vector store is treated as an opaque key-value plus nearest-neighbour
service. Records are dicts of the form::

    {"id": str, "vector": list[float], "text": str, "metadata": dict}

Metadata values must be scalars (str, int, float, bool). Filters are
equality maps over metadata keys, e.g. ``{"session_id": "..."}``; each
provider translates them into its own filter syntax.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class VectorStoreError(RuntimeError):
    """Raised when a vector store operation fails."""


class BaseVectorStore(ABC):
    """Abstract base class for VectorStore providers.

    Subclasses implement the storage primitives; readiness polling and
    input validation are shared.
    """

    @abstractmethod
    def upsert(
        self,
        records: List[Dict[str, Any]],
        trace: Optional[Any] = None,
    ) -> None:
        """Insert or update records. Repeating an upsert is a no-op.

        Raises:
            ValueError: If records are empty or malformed.
            VectorStoreError: If the backend call fails.
        """

    @abstractmethod
    def query(
        self,
        vector: List[float],
        top_k: int = 10,
        filters: Optional[Dict[str, Any]] = None,
        trace: Optional[Any] = None,
    ) -> List[Dict[str, Any]]:
        """Return the *top_k* nearest records, most similar first.

        Each result is ``{"id", "score", "text", "metadata"}`` where a
        higher score means more similar.
        """

    @abstractmethod
    def get_by_filter(
        self,
        filters: Dict[str, Any],
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return every record matching *filters* as ``{"id", "text", "metadata"}``."""

    @abstractmethod
    def delete_by_filter(self, filters: Dict[str, Any]) -> int:
        """Delete every record matching *filters* and return how many were removed."""

    @abstractmethod
    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        """Return the number of records, optionally restricted by *filters*."""

    @abstractmethod
    def list_values(self, field: str) -> Dict[str, int]:
        """Return each distinct value of metadata *field* with its record count."""

    def build_index(self, trace: Optional[Any] = None) -> None:
        """Request an index build. Providers that index on write do nothing."""

    def is_ready(self) -> bool:
        """Return True once the store can serve queries."""
        return True

    def wait_until_ready(
        self,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> float:
        """Poll ``is_ready`` until it returns True.

        Args:
            timeout: Maximum seconds to wait.
            poll_interval: Seconds between polls.
            sleep: Sleep function, injectable for tests.

        Returns:
            Seconds spent waiting.

        Raises:
            VectorStoreError: If the store is not ready within *timeout*.
        """
        waited = 0.0
        while not self.is_ready():
            if waited >= timeout:
                raise VectorStoreError(
                    f"{self.__class__.__name__} not ready after {timeout:.1f}s"
                )
            logger.debug("Vector store not ready, polling again in %.1fs", poll_interval)
            sleep(poll_interval)
            waited += poll_interval
        return waited

    def validate_records(self, records: List[Dict[str, Any]]) -> None:
        """Validate records before upsert.

        Raises:
            ValueError: If the list is empty or any record is malformed.
        """
        if not records:
            raise ValueError("Records list cannot be empty")

        for i, record in enumerate(records):
            if not isinstance(record, dict):
                raise ValueError(
                    f"Record at index {i} is not a dict (type: {type(record).__name__})"
                )
            for required in ("id", "vector"):
                if required not in record:
                    raise ValueError(f"Record at index {i} is missing required field: '{required}'")

            vector = record["vector"]
            if not isinstance(vector, (list, tuple)):
                raise ValueError(
                    f"Record at index {i} has invalid vector type: {type(vector).__name__}"
                )
            if not vector:
                raise ValueError(f"Record at index {i} has empty vector")

            for key, value in (record.get("metadata") or {}).items():
                if not isinstance(value, (str, int, float, bool)):
                    raise ValueError(
                        f"Record at index {i} has non-scalar metadata '{key}' "
                        f"({type(value).__name__})"
                    )

    def validate_query_vector(self, vector: List[float], top_k: int) -> None:
        """Validate query parameters.

        Raises:
            ValueError: If the vector is empty or *top_k* is not positive.
        """
        if not isinstance(vector, (list, tuple)):
            raise ValueError(
                f"Query vector must be a list or tuple, got {type(vector).__name__}"
            )
        if not vector:
            raise ValueError("Query vector cannot be empty")
        if not isinstance(top_k, int) or top_k <= 0:
            raise ValueError(f"top_k must be a positive integer, got {top_k}")
