"""Unit tests for CodeSummarizer file and project summaries."""

import pytest

from code_explorer.core.query_engine.summarizer import (
    SUMMARY_SYSTEM_PROMPT,
    CodeSummarizer,
    create_code_summarizer,
)
from code_explorer.core.trace.trace_context import TraceContext


class TestSummarizeFile:

    def test_file_text_is_sent_to_llm(self, ingested, vector_store, llm) -> None:
        summary = CodeSummarizer(vector_store, llm).summarize_file("demo", "app/db.py")

        assert summary.summary == "fake answer"
        assert summary.file_path == "app/db.py"
        assert summary.truncated is False
        system, user = llm.calls[0]
        assert system["content"] == SUMMARY_SYSTEM_PROMPT
        assert user["content"].startswith("Summarize the following text: import sqlite3")
        assert "def connect(path):" in user["content"]

    def test_long_files_are_truncated(self, ingested, vector_store, llm) -> None:
        summary = CodeSummarizer(vector_store, llm, max_chars=10).summarize_file("demo", "app/db.py")

        assert summary.truncated is True
        assert llm.prompts[0] == "Summarize the following text: import sql"

    def test_unknown_file(self, ingested, vector_store, llm) -> None:
        with pytest.raises(LookupError, match="File not found"):
            CodeSummarizer(vector_store, llm).summarize_file("demo", "nope.py")

    def test_missing_arguments(self, vector_store, llm) -> None:
        summarizer = CodeSummarizer(vector_store, llm)
        with pytest.raises(ValueError):
            summarizer.summarize_file("demo", "")
        with pytest.raises(ValueError):
            summarizer.summarize_file("", "app/db.py")

    def test_trace(self, ingested, vector_store, llm) -> None:
        trace = TraceContext()
        CodeSummarizer(vector_store, llm).summarize_file("demo", "web/api.js", trace=trace)

        assert trace.get_stage_data("summarize") == {
            "file_path": "web/api.js",
            "chunk_count": 1,
            "truncated": False,
        }


class TestSummarizeProject:

    def test_project_overview(self, ingested, vector_store, llm) -> None:
        summary = CodeSummarizer(vector_store, llm).summarize_project("demo")

        assert summary.file_count == 4
        assert summary.file_path is None
        assert "project-analyst" in llm.calls[0][0]["content"]
        assert "- Total files: 4" in llm.prompts[0]
        assert summary.to_dict()["summary"] == "fake answer"

    def test_unknown_session(self, vector_store, llm) -> None:
        with pytest.raises(LookupError):
            CodeSummarizer(vector_store, llm).summarize_project("missing")


def test_summarize_text_rejects_blank_input(vector_store, llm) -> None:
    with pytest.raises(ValueError, match="empty"):
        CodeSummarizer(vector_store, llm).summarize_text(" \n")


def test_create_code_summarizer(settings, vector_store, llm) -> None:
    summarizer = create_code_summarizer(settings, vector_store=vector_store, llm=llm)
    assert summarizer.vector_store is vector_store
    assert summarizer.analyst.llm is llm
