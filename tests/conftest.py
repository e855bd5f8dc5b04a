"""Shared fixtures: in-memory providers and settings builders.

The fakes implement the real provider interfaces so that pipelines, query
engines and MCP tools can be wired end to end without network access.
"""

from __future__ import annotations

import copy
import math
import re
import zlib
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

import pytest

from code_explorer.core.settings import Settings
from code_explorer.ingestion.pipeline import IngestionPipeline
from code_explorer.libs.embedding.base_embedding import BaseEmbedding
from code_explorer.libs.llm.base_llm import BaseLLM
from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore

_WORD = re.compile(r"[a-z_][a-z0-9_]*")


# ── Fakes ────────────────────────────────────────────────────────────


class FakeEmbedding(BaseEmbedding):
    """Hashed bag-of-words vectors; texts sharing words end up close."""

    def __init__(self, dimension: int = 64, fail_when: Optional[Callable[[List[str]], bool]] = None) -> None:
        self.dimension = dimension
        self.fail_when = fail_when
        self.calls: List[List[str]] = []

    def embed(self, texts: List[str], trace: Any = None) -> List[List[float]]:
        self.validate_texts(texts)
        self.calls.append(list(texts))
        if self.fail_when is not None and self.fail_when(texts):
            raise RuntimeError("embedding backend unavailable")
        return [self._vector(text) for text in texts]

    def _vector(self, text: str) -> List[float]:
        vector = [0.0] * self.dimension
        for word in _WORD.findall(text.lower()):
            vector[zlib.crc32(word.encode("utf-8")) % (self.dimension - 1)] += 1.0
        # constant component keeps every vector non-zero
        vector[-1] = 0.1
        return vector

    def get_dimension(self) -> int:
        return self.dimension


class FakeLLM(BaseLLM):
    """Records every conversation and answers with a canned reply."""

    def __init__(
        self,
        reply: str | Callable[[List[Dict[str, str]]], str] = "fake answer",
        error: Optional[Exception] = None,
    ) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[List[Dict[str, str]]] = []

    def chat(self, messages: List[Dict[str, str]]) -> str:
        self.validate_messages(messages)
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        if callable(self.reply):
            return self.reply(messages)
        return self.reply

    @property
    def prompts(self) -> List[str]:
        return [call[-1]["content"] for call in self.calls]


def _matches(metadata: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    return all(metadata.get(key) == value for key, value in (filters or {}).items())


def _cosine(a: List[float], b: List[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class InMemoryVectorStore(BaseVectorStore):
    """Dict-backed store with cosine search and equality filters.

    Args:
        not_ready_polls: Number of ``is_ready`` calls that report False
            before the store becomes ready.
    """

    def __init__(self, not_ready_polls: int = 0) -> None:
        self.records: Dict[str, Dict[str, Any]] = {}
        self.not_ready_polls = not_ready_polls
        self.ready_polls = 0
        self.index_builds = 0
        self.upsert_calls = 0

    def upsert(self, records: List[Dict[str, Any]], trace: Any = None) -> None:
        self.validate_records(records)
        self.upsert_calls += 1
        for record in records:
            self.records[record["id"]] = {
                "id": record["id"],
                "vector": list(record["vector"]),
                "text": record.get("text", ""),
                "metadata": dict(record.get("metadata") or {}),
            }

    def query(
        self,
        vector: List[float],
        top_k: int = 10,
        filters: Optional[Dict[str, Any]] = None,
        trace: Any = None,
    ) -> List[Dict[str, Any]]:
        self.validate_query_vector(vector, top_k)
        hits = [
            {
                "id": record["id"],
                "score": _cosine(vector, record["vector"]),
                "text": record["text"],
                "metadata": dict(record["metadata"]),
            }
            for record in self.records.values()
            if _matches(record["metadata"], filters)
        ]
        hits.sort(key=lambda hit: hit["score"], reverse=True)
        return hits[:top_k]

    def get_by_filter(self, filters: Dict[str, Any], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        found = [
            {"id": record["id"], "text": record["text"], "metadata": dict(record["metadata"])}
            for record in self.records.values()
            if _matches(record["metadata"], filters)
        ]
        return found if limit is None else found[:limit]

    def delete_by_filter(self, filters: Dict[str, Any]) -> int:
        if not filters:
            raise ValueError("Refusing to delete with an empty filter")
        doomed = [rid for rid, record in self.records.items() if _matches(record["metadata"], filters)]
        for rid in doomed:
            del self.records[rid]
        return len(doomed)

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return sum(1 for record in self.records.values() if _matches(record["metadata"], filters))

    def list_values(self, field: str) -> Dict[str, int]:
        return dict(Counter(
            str(record["metadata"][field])
            for record in self.records.values()
            if field in record["metadata"]
        ))

    def build_index(self, trace: Any = None) -> None:
        self.index_builds += 1

    def is_ready(self) -> bool:
        self.ready_polls += 1
        return self.ready_polls > self.not_ready_polls


# ── Settings ─────────────────────────────────────────────────────────

_BASE_SETTINGS: Dict[str, Any] = {
    "llm": {"provider": "fake", "model": "fake-chat"},
    "embedding": {"provider": "fake", "model": "fake-embed"},
    "vector_store": {
        "provider": "memory",
        "wait_until_ready": True,
        "ready_timeout_seconds": 5,
        "ready_poll_interval_seconds": 0.5,
    },
    "splitter": {
        "type": "ast",
        "chunk_lines": 20,
        "overlap_lines": 5,
        "max_tokens": 200,
        "overlap_tokens": 20,
        "chars_per_token": 4,
    },
    "ingestion": {"batch_size": 4, "batch_delay_seconds": 0.0},
    "annotation": {"use_llm": False},
    "retrieval": {"top_k": 5, "chat_top_k": 3, "max_top_k": 20},
    "build_guide": {"batch_size": 2, "batch_delay_seconds": 0.0, "max_steps": 200},
    "observability": {"log_level": "INFO", "trace_enabled": False},
}


def build_settings(**sections: Dict[str, Any]) -> Settings:
    """Test settings; each keyword updates the keys of one section."""
    data = copy.deepcopy(_BASE_SETTINGS)
    for name, values in sections.items():
        data.setdefault(name, {}).update(values)
    return Settings.from_dict(data)


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return build_settings


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def embedding() -> FakeEmbedding:
    return FakeEmbedding()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def vector_store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def sample_repo(tmp_path):
    """A small mixed Python/JS project on disk."""
    root = tmp_path / "repo"
    (root / "app").mkdir(parents=True)
    (root / "web").mkdir()
    (root / "node_modules" / "left-pad").mkdir(parents=True)

    (root / "app" / "__init__.py").write_text("", encoding="utf-8")
    (root / "app" / "db.py").write_text(
        "import sqlite3\n"
        "\n"
        "\n"
        "def connect(path):\n"
        "    \"\"\"Open the application database.\"\"\"\n"
        "    return sqlite3.connect(path)\n",
        encoding="utf-8",
    )
    (root / "app" / "main.py").write_text(
        "from app.db import connect\n"
        "\n"
        "\n"
        "def run():\n"
        "    conn = connect('app.sqlite')\n"
        "    return conn.execute('select 1').fetchone()\n"
        "\n"
        "\n"
        "if __name__ == '__main__':\n"
        "    run()\n",
        encoding="utf-8",
    )
    (root / "web" / "api.js").write_text(
        "export function fetchUsers() {\n"
        "  return fetch('/api/users').then((res) => res.json());\n"
        "}\n",
        encoding="utf-8",
    )
    (root / "web" / "index.js").write_text(
        "import { fetchUsers } from './api';\n"
        "\n"
        "fetchUsers().then((users) => console.log(users.length));\n",
        encoding="utf-8",
    )
    (root / "node_modules" / "left-pad" / "index.js").write_text("module.exports = 1;\n", encoding="utf-8")
    (root / "package-lock.json").write_text("{}\n", encoding="utf-8")
    (root / "logo.png").write_bytes(b"\x89PNG\r\n")
    return root


@pytest.fixture
def ingested(settings, sample_repo, embedding, vector_store):
    """``sample_repo`` ingested into ``vector_store`` under session ``demo``."""
    result = IngestionPipeline(
        settings, embedding=embedding, vector_store=vector_store, sleep=lambda _: None
    ).run(str(sample_repo), session_id="demo")
    assert result.success, result.error
    return result
