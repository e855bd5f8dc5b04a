"""Session lifecycle management.

A session is the set of records sharing one ``session_id`` metadata value.
This module lists sessions, inspects their files and deletes them.

Design Principles:
- Store-agnostic: only the ``BaseVectorStore`` interface is used.
- Read-only safe: list methods never mutate data.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result data-classes
# ---------------------------------------------------------------------------

@dataclass
class SessionInfo:
    """Summary information about an ingested session."""

    session_id: str
    chunk_count: int = 0
    file_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class FileInfo:
    """A file stored in a session."""

    file_path: str
    language: str = "plaintext"
    chunk_type: str = "utility"
    chunk_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# SessionManager
# ---------------------------------------------------------------------------

class SessionManager:
    """List, inspect and clear sessions in a vector store.

    Args:
        vector_store: Store holding the session records.
    """

    def __init__(self, vector_store: BaseVectorStore) -> None:
        self.vector_store = vector_store

    def list_sessions(self) -> List[SessionInfo]:
        """Return every session with its chunk and file counts, sorted by id."""
        sessions: List[SessionInfo] = []
        for session_id, chunk_count in sorted(self.vector_store.list_values("session_id").items()):
            files = {
                record["metadata"].get("file_path")
                for record in self.vector_store.get_by_filter({"session_id": session_id})
            }
            sessions.append(SessionInfo(
                session_id=session_id,
                chunk_count=chunk_count,
                file_count=len(files),
            ))
        return sessions

    def list_files(self, session_id: str) -> List[FileInfo]:
        """Return the files of *session_id*, sorted by path.

        Raises:
            ValueError: If *session_id* is empty.
            LookupError: If the session has no records.
        """
        if not session_id:
            raise ValueError("session_id is required")

        records = self.vector_store.get_by_filter({"session_id": session_id})
        if not records:
            raise LookupError(f"Session not found: {session_id}")

        counts: Counter = Counter()
        first_seen: Dict[str, Dict[str, Any]] = {}
        for record in records:
            metadata = record["metadata"]
            file_path = metadata.get("file_path", "")
            counts[file_path] += 1
            first_seen.setdefault(file_path, metadata)

        return [
            FileInfo(
                file_path=file_path,
                language=first_seen[file_path].get("language", "plaintext"),
                chunk_type=first_seen[file_path].get("chunk_type", "utility"),
                chunk_count=counts[file_path],
            )
            for file_path in sorted(counts)
        ]

    def session_exists(self, session_id: str) -> bool:
        return bool(session_id) and self.vector_store.count({"session_id": session_id}) > 0

    def clear_session(self, session_id: str) -> int:
        """Delete every record of *session_id*.

        Returns:
            Number of records removed; 0 for an unknown session.

        Raises:
            ValueError: If *session_id* is empty.
        """
        if not session_id:
            raise ValueError("session_id is required")
        removed = self.vector_store.delete_by_filter({"session_id": session_id})
        logger.info("Cleared session %s (%d records)", session_id, removed)
        return removed
