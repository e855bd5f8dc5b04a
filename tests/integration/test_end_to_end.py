"""End-to-end test: index a project into a real Chroma store, then explore it.

Embeddings and chat use the in-memory fakes; the vector store is a
ChromaDB persistent client in a temporary directory.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from code_explorer.core.query_engine import (
    BuildGuideGenerator,
    CodeChat,
    CodeSearch,
    CodeSummarizer,
    CodeVisualizer,
)
from code_explorer.core.trace.trace_collector import TraceCollector
from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.ingestion.pipeline import IngestionPipeline
from code_explorer.ingestion.session_manager import SessionManager
from code_explorer.libs.vector_store.chroma_store import ChromaVectorStore
from conftest import FakeEmbedding, FakeLLM

pytest.importorskip("chromadb")


@pytest.fixture
def chroma_settings(make_settings, tmp_path: Path):
    return make_settings(vector_store={
        "provider": "chroma",
        "persist_directory": str(tmp_path / "chroma"),
        "collection_name": "e2e",
        "wait_until_ready": True,
    })


@pytest.mark.integration
def test_index_then_explore(chroma_settings, sample_repo: Path, tmp_path: Path) -> None:
    store = ChromaVectorStore(chroma_settings)
    embedding = FakeEmbedding()
    llm = FakeLLM(reply="explained")
    collector = TraceCollector(tmp_path / "traces.jsonl")

    # Index
    trace = TraceContext(trace_type="ingestion")
    result = IngestionPipeline(chroma_settings, embedding=embedding, vector_store=store).run(
        str(sample_repo), session_id="e2e", trace=trace
    )
    collector.collect(trace)

    assert result.success, result.error
    assert store.count({"session_id": "e2e"}) == result.chunk_count
    assert collector.collected_ids == [trace.trace_id]

    # Re-indexing the same content keeps the record count
    again = IngestionPipeline(chroma_settings, embedding=embedding, vector_store=store).run(
        str(sample_repo), session_id="e2e"
    )
    assert again.vector_ids == result.vector_ids
    assert store.count() == result.chunk_count

    # Search
    search = CodeSearch(settings=chroma_settings, embedding_client=embedding, vector_store=store)
    hits = search.search("e2e", "sqlite database connect", top_k=2)
    assert "app/db.py" in [hit.file_path for hit in hits]
    assert all(hit.metadata["session_id"] == "e2e" for hit in hits)

    # Chat
    answer = CodeChat(search, llm).ask("e2e", "How are users fetched?")
    assert answer.answer == "explained"
    assert answer.sources

    # Summarize
    summarizer = CodeSummarizer(store, llm)
    assert summarizer.summarize_file("e2e", "web/api.js").summary == "explained"
    assert summarizer.summarize_project("e2e").file_count == 4

    # Visualize
    graph = CodeVisualizer(store).build_graph("e2e")
    edges = {(edge["from"], edge["to"]) for edge in graph["edges"]}
    assert edges == {("app/main.py", "app/db.py"), ("web/index.js", "web/api.js")}

    # Build guide
    guide = BuildGuideGenerator(store, llm, batch_delay_seconds=0).generate("e2e")
    paths = [step.file_path for step in guide.steps]
    assert guide.total_steps == result.chunk_count
    assert paths.index("app/db.py") < paths.index("app/main.py")
    assert paths.index("web/api.js") < paths.index("web/index.js")

    # Sessions
    manager = SessionManager(store)
    assert [s.session_id for s in manager.list_sessions()] == ["e2e"]
    assert manager.clear_session("e2e") == result.chunk_count
    assert manager.list_sessions() == []


@pytest.mark.integration
def test_sessions_are_isolated(chroma_settings, sample_repo: Path, tmp_path: Path) -> None:
    store = ChromaVectorStore(chroma_settings)
    embedding = FakeEmbedding()
    pipeline = IngestionPipeline(chroma_settings, embedding=embedding, vector_store=store)

    first = pipeline.run(str(sample_repo), session_id="one")
    second = pipeline.run(str(sample_repo / "web"), session_id="two")

    assert first.success and second.success
    assert second.files == ["api.js", "index.js"]
    assert set(first.vector_ids).isdisjoint(second.vector_ids)

    manager = SessionManager(store)
    manager.clear_session("two")
    assert store.count({"session_id": "one"}) == first.chunk_count
    assert store.count({"session_id": "two"}) == 0
