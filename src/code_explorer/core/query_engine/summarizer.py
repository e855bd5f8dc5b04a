"""Summarizer: LLM summaries of a stored file or a whole session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from code_explorer.core.query_engine.project_context import (
    ProjectAnalyst,
    detect_tech_stack,
    file_extensions,
    unique_files,
)
from code_explorer.core.query_engine.session_reader import fetch_session_chunks, reassemble_file

if TYPE_CHECKING:
    from code_explorer.core.settings import Settings
    from code_explorer.libs.llm.base_llm import BaseLLM
    from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = "You are a helpful assistant that summarizes text."

# Longer files are cut before prompting.
MAX_SUMMARY_CHARS = 24_000


@dataclass
class Summary:
    session_id: str
    summary: str
    file_path: Optional[str] = None
    file_count: int = 0
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "file_path": self.file_path,
            "file_count": self.file_count,
            "truncated": self.truncated,
            "summary": self.summary,
        }


class CodeSummarizer:
    """Summarize one file, or give an overview of a whole session.

    Args:
        vector_store: Store holding the session's chunks.
        llm: Chat LLM.
        max_chars: Cap on file text sent for a file summary.
    """

    def __init__(
        self,
        vector_store: BaseVectorStore,
        llm: BaseLLM,
        max_chars: int = MAX_SUMMARY_CHARS,
    ) -> None:
        self.vector_store = vector_store
        self.llm = llm
        self.analyst = ProjectAnalyst(llm)
        self.max_chars = max_chars

    def summarize_text(self, text: str) -> str:
        if not text.strip():
            raise ValueError("Text content is empty, cannot summarize")
        return self.llm.chat([
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": f"Summarize the following text: {text}"},
        ]).strip()

    def summarize_file(self, session_id: str, file_path: str, trace: Optional[Any] = None) -> Summary:
        """Summarize *file_path* as stored in *session_id*.

        Raises:
            ValueError: If an argument is empty.
            LookupError: If the file has no chunks in the session.
        """
        if not file_path:
            raise ValueError("file_path is required")
        chunks = fetch_session_chunks(self.vector_store, session_id, file_path=file_path)
        if not chunks:
            raise LookupError(f"File not found in session {session_id}: {file_path}")

        text = reassemble_file(chunks)
        truncated = len(text) > self.max_chars
        if truncated:
            logger.info("Truncating %s from %d to %d chars for summary", file_path, len(text), self.max_chars)
            text = text[:self.max_chars]

        summary = self.summarize_text(text)
        if trace is not None:
            trace.record_stage("summarize", {
                "file_path": file_path,
                "chunk_count": len(chunks),
                "truncated": truncated,
            })
        return Summary(
            session_id=session_id,
            summary=summary,
            file_path=file_path,
            file_count=1,
            truncated=truncated,
        )

    def summarize_project(self, session_id: str, trace: Optional[Any] = None) -> Summary:
        """Project overview for *session_id*.

        Raises:
            ValueError: If *session_id* is empty.
            LookupError: If the session has no chunks.
        """
        chunks = fetch_session_chunks(self.vector_store, session_id)
        if not chunks:
            raise LookupError(f"No code indexed for session {session_id}")

        summary = self.analyst.analyze_project_overview(chunks)
        if trace is not None:
            trace.record_stage("summarize", {
                "file_count": len(unique_files(chunks)),
                "extensions": file_extensions(chunks),
                "tech_stack": detect_tech_stack(chunks),
            })
        return Summary(
            session_id=session_id,
            summary=summary,
            file_count=len(unique_files(chunks)),
        )


def create_code_summarizer(
    settings: Settings,
    vector_store: Optional[BaseVectorStore] = None,
    llm: Optional[BaseLLM] = None,
) -> CodeSummarizer:
    """Factory function to create a CodeSummarizer from settings."""
    if vector_store is None:
        from code_explorer.libs.vector_store.vector_store_factory import VectorStoreFactory
        vector_store = VectorStoreFactory.create(settings)
    if llm is None:
        from code_explorer.libs.llm.llm_factory import LLMFactory
        llm = LLMFactory.create(settings)
    return CodeSummarizer(vector_store, llm)
