"""Read back the stored chunks of a session."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from code_explorer.core.types import CodeChunk
from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore


def fetch_session_chunks(
    vector_store: BaseVectorStore,
    session_id: str,
    file_path: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[CodeChunk]:
    """Return the chunks of *session_id*, ordered by file path and start line.

    Args:
        vector_store: Store to read from.
        session_id: Session to read.
        file_path: Restrict to one file.
        limit: Maximum number of records to read.

    Raises:
        ValueError: If *session_id* is empty.
    """
    if not session_id:
        raise ValueError("session_id is required")

    filters: Dict[str, Any] = {"session_id": session_id}
    if file_path:
        filters["file_path"] = file_path

    records = vector_store.get_by_filter(filters, limit=limit)
    chunks = [CodeChunk.from_record(record) for record in records]
    chunks.sort(key=lambda c: (c.file_path, c.start_line, c.chunk_index))
    return chunks


def group_by_file(chunks: List[CodeChunk]) -> Dict[str, List[CodeChunk]]:
    """Group chunks by file path, keeping input order within each file."""
    grouped: Dict[str, List[CodeChunk]] = {}
    for chunk in chunks:
        grouped.setdefault(chunk.file_path, []).append(chunk)
    return grouped


def reassemble_file(chunks: List[CodeChunk]) -> str:
    """Rebuild a file's text from its chunks, dropping overlapping lines.

    Chunks must belong to one file. Lines no chunk covers are blank in
    the source and come back as empty lines; trailing blank lines are
    not restored. Consecutive single-line chunks on the same line are
    pieces of one overlong line and are joined back together.
    """
    lines: List[str] = []
    last_line = 0
    previous: Optional[CodeChunk] = None
    for chunk in sorted(chunks, key=lambda c: (c.start_line, c.chunk_index)):
        single_line = chunk.start_line == chunk.end_line
        if (
            single_line
            and chunk.start_line == last_line
            and previous is not None
            and previous.start_line == previous.end_line == last_line
        ):
            lines[-1] += chunk.text
            previous = chunk
            continue
        if chunk.end_line <= last_line:
            continue

        lines.extend([""] * (chunk.start_line - last_line - 1))
        skip = max(0, last_line - chunk.start_line + 1)
        lines.extend(chunk.text.split("\n")[skip:])
        last_line = chunk.end_line
        previous = chunk
    return "\n".join(lines)
