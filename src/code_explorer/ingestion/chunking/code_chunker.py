"""Code chunker: turns loaded files into ``CodeChunk`` records.

Self-contained file types (components, api routes, config and style files)
stay whole when they fit the token budget. Everything else goes through
the configured splitter. Every chunk carries its session, file path, line
range and a deterministic id::

    {source_hash}_{chunk_index:04d}_{content_hash}

where ``source_hash`` is the first 8 hex chars of SHA-256 over
``"{session_id}:{file_path}"`` and ``content_hash`` the first 8 hex chars of
SHA-256 over the chunk text. Re-chunking unchanged content in the same
session therefore yields the same ids.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Any, List, Optional

from code_explorer.core.types import CodeChunk, CodeFile
from code_explorer.ingestion.chunking.code_analysis import (
    WHOLE_FILE_TYPES,
    assess_importance,
    detect_code_patterns,
    detect_file_type,
    extract_exports,
    extract_imports,
)
from code_explorer.libs.splitter.base_splitter import BaseSplitter, TextSegment, estimate_tokens
from code_explorer.libs.splitter.splitter_factory import SplitterFactory

logger = logging.getLogger(__name__)


def generate_chunk_id(session_id: str, file_path: str, chunk_index: int, text: str) -> str:
    source_hash = hashlib.sha256(f"{session_id}:{file_path}".encode("utf-8")).hexdigest()[:8]
    content_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()[:8]
    return f"{source_hash}_{chunk_index:04d}_{content_hash}"


def _mentions(text: str, name: str) -> bool:
    """Whether *name* appears in *text* as a whole identifier."""
    return re.search(rf"(?<![\w$]){re.escape(name)}(?![\w$])", text) is not None


class CodeChunker:
    """Split ``CodeFile`` records into annotated-ready ``CodeChunk`` records.

    Args:
        settings: Application settings; used to build the splitter when
            none is injected and to read ``splitter.max_tokens``.
        splitter: Optional pre-built splitter.
    """

    def __init__(self, settings: Any, splitter: Optional[BaseSplitter] = None) -> None:
        self.settings = settings
        self.splitter = splitter or SplitterFactory.create(settings)
        self.max_tokens = int(settings.splitter.get("max_tokens", 400))
        self.chars_per_token = int(settings.splitter.get("chars_per_token", 4))

    def _segments(self, code_file: CodeFile, chunk_type: str, trace: Any) -> List[TextSegment]:
        lines = code_file.content.splitlines()
        while lines and not lines[-1].strip():
            lines.pop()
        whole = "\n".join(lines)
        if (
            chunk_type in WHOLE_FILE_TYPES
            and estimate_tokens(whole, self.chars_per_token) <= self.max_tokens
        ):
            return [TextSegment(whole, 1, len(lines))]
        return self.splitter.split_text(code_file.content, language=code_file.language, trace=trace)

    def chunk_file(self, code_file: CodeFile, session_id: str, trace: Any = None) -> List[CodeChunk]:
        """Chunk one file.

        Args:
            code_file: Loaded file.
            session_id: Owning session.
            trace: Optional trace context.

        Returns:
            Chunks in source order; empty for blank files.

        Raises:
            ValueError: If *session_id* is empty.
        """
        if not session_id:
            raise ValueError("session_id is required to chunk files")
        if not code_file.content.strip():
            return []

        content = code_file.content
        language = code_file.language
        chunk_type = detect_file_type(code_file.path, content)
        # imports and importance are file-level; every chunk of the file shares them
        imports = extract_imports(content, language)
        exports = extract_exports(content, language)
        file_patterns = detect_code_patterns(content, chunk_type, language)
        importance = assess_importance(code_file.path, chunk_type, file_patterns)

        chunks: List[CodeChunk] = []
        for index, segment in enumerate(self._segments(code_file, chunk_type, trace)):
            chunks.append(CodeChunk(
                id=generate_chunk_id(session_id, code_file.path, index, segment.text),
                session_id=session_id,
                file_path=code_file.path,
                text=segment.text,
                start_line=segment.start_line,
                end_line=segment.end_line,
                chunk_index=index,
                language=language,
                chunk_type=chunk_type,
                symbol_name=segment.symbol_name,
                imports=imports,
                exports=[name for name in exports if _mentions(segment.text, name)],
                code_patterns=detect_code_patterns(segment.text, chunk_type, language),
                importance=importance,
            ))

        logger.debug("Chunked %s into %d chunks (type=%s)", code_file.path, len(chunks), chunk_type)
        return chunks

    def chunk_files(self, files: List[CodeFile], session_id: str, trace: Any = None) -> List[CodeChunk]:
        """Chunk several files, preserving file order."""
        chunks: List[CodeChunk] = []
        for code_file in files:
            chunks.extend(self.chunk_file(code_file, session_id, trace=trace))
        return chunks
