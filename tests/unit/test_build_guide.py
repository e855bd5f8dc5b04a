"""Unit tests for the build guide generator."""

from typing import Any, Dict, List

import pytest

from code_explorer.core.query_engine.build_guide import (
    BuildGuideGenerator,
    create_build_guide_generator,
    order_chunks,
    simple_explanation,
)
from code_explorer.core.types import CodeChunk
from conftest import FakeLLM


def _step_paths(events: List[Dict[str, Any]]) -> List[str]:
    return [e["step"]["file_path"] for e in events if e["type"] == "step"]


# ── simple_explanation ───────────────────────────────────────────────


@pytest.mark.parametrize(
    "content,expected",
    [
        ("", "Empty file: a.py"),
        ("const x = 1\n\nlet y = 2", "File: a.py (PY) - Contains 2 lines of JavaScript/TypeScript functions and variables"),
        ("class A:\n    def f(self):\n        pass", "File: a.py (PY) - Contains 3 lines of Python class definitions"),
        ("def f():\n    pass", "File: a.py (PY) - Contains 2 lines of Python functions"),
        ("import os", "File: a.py (PY) - Contains 1 lines of import statements"),
        ("x = 1", "File: a.py (PY) - Contains 1 lines of code"),
    ],
)
def test_simple_explanation(content: str, expected: str) -> None:
    assert simple_explanation(content, "a.py", "py") == expected


# ── Ordering ─────────────────────────────────────────────────────────


def _chunk(path: str, imports=(), chunk_type="utility", importance="supporting", start=1) -> CodeChunk:
    return CodeChunk(
        id=f"{path}:{start}",
        session_id="s1",
        file_path=path,
        text=f"# {path}",
        start_line=start,
        end_line=start + 4,
        language="python",
        chunk_type=chunk_type,
        importance=importance,
        imports=list(imports),
    )


def test_order_chunks_follows_imports_then_rank() -> None:
    chunks = [
        _chunk("app/main.py", imports=["app.service"], importance="critical"),
        _chunk("app/service.py", imports=["app.models"], start=10),
        _chunk("app/service.py", imports=["app.models"], start=1),
        _chunk("app/models.py"),
        _chunk("settings.py", chunk_type="config", importance="critical"),
        _chunk("tests/test_app.py", chunk_type="test"),
    ]

    ordered = [(c.file_path, c.start_line) for c in order_chunks(chunks)]

    assert ordered == [
        ("settings.py", 1),
        ("app/models.py", 1),
        ("app/service.py", 1),
        ("app/service.py", 10),
        ("app/main.py", 1),
        ("tests/test_app.py", 1),
    ]


# ── stream ───────────────────────────────────────────────────────────


class TestStream:

    def test_event_sequence(self, ingested, vector_store, llm) -> None:
        events = list(BuildGuideGenerator(vector_store, llm, batch_size=2, batch_delay_seconds=0).stream("demo"))

        total = ingested.chunk_count
        assert events[0] == {"type": "total", "count": total}
        assert events[-1] == {"type": "complete", "total_steps": total}
        steps = [e["step"] for e in events if e["type"] == "step"]
        assert [s["step_number"] for s in steps] == list(range(1, total + 1))
        assert all(s["explained_by"] == "llm" and s["explanation"] == "fake answer" for s in steps)

    def test_dependencies_come_first(self, ingested, vector_store, llm) -> None:
        paths = _step_paths(list(BuildGuideGenerator(vector_store, llm).stream("demo")))

        assert set(paths) == {"app/db.py", "app/main.py", "web/api.js", "web/index.js"}
        assert len(paths) == ingested.chunk_count
        assert paths.index("app/db.py") < paths.index("app/main.py")
        assert paths.index("web/api.js") < paths.index("web/index.js")

    def test_prompts_carry_project_context(self, ingested, vector_store, llm) -> None:
        list(BuildGuideGenerator(vector_store, llm).stream("demo"))

        assert len(llm.calls) == ingested.chunk_count
        assert all("Project Context: This is a Python project with 4 files" in p for p in llm.prompts)

    def test_llm_failure_falls_back_to_rules(self, ingested, vector_store) -> None:
        llm = FakeLLM(error=RuntimeError("quota exceeded"))

        events = list(BuildGuideGenerator(vector_store, llm, batch_size=3).stream("demo"))

        kinds = [e["type"] for e in events]
        assert kinds == ["total"] + ["error", "step"] * ingested.chunk_count + ["complete"]
        error = events[1]
        assert error["step_number"] == 1
        assert "quota exceeded" in error["message"]
        step = events[2]["step"]
        assert step["explained_by"] == "rule"
        assert step["explanation"].startswith(f"File: {step['file_name']}")

    def test_without_llm_uses_rules_silently(self, ingested, vector_store) -> None:
        events = list(BuildGuideGenerator(vector_store, None).stream("demo"))

        assert not any(e["type"] == "error" for e in events)
        assert all(e["step"]["explained_by"] == "rule" for e in events if e["type"] == "step")

    def test_pause_between_batches_only(self, ingested, vector_store, llm) -> None:
        sleeps: List[float] = []
        generator = BuildGuideGenerator(vector_store, llm, batch_size=2, batch_delay_seconds=0.5, sleep=sleeps.append)

        list(generator.stream("demo"))

        batches = (ingested.chunk_count + 1) // 2
        assert batches > 1
        assert sleeps == [0.5] * (batches - 1)

    def test_max_steps_caps_the_guide(self, ingested, vector_store, llm) -> None:
        events = list(BuildGuideGenerator(vector_store, llm, max_steps=3).stream("demo"))

        assert events[0] == {"type": "total", "count": 3}
        assert events[-1] == {"type": "complete", "total_steps": 3}

    def test_unknown_session(self, vector_store, llm) -> None:
        with pytest.raises(LookupError):
            list(BuildGuideGenerator(vector_store, llm).stream("missing"))

    def test_invalid_batch_size(self, vector_store) -> None:
        with pytest.raises(ValueError):
            BuildGuideGenerator(vector_store, batch_size=0)


# ── generate ─────────────────────────────────────────────────────────


class TestGenerate:

    def test_collects_steps_and_overview(self, ingested, vector_store, llm) -> None:
        guide = BuildGuideGenerator(vector_store, llm).generate("demo", include_overview=True)

        assert guide.total_steps == ingested.chunk_count
        assert guide.project_overview == "fake answer"
        assert guide.errors == []
        assert guide.to_dict()["steps"][0]["step_number"] == 1

    def test_overview_failure_is_recorded(self, ingested, vector_store) -> None:
        guide = BuildGuideGenerator(vector_store, FakeLLM(error=RuntimeError("down"))).generate(
            "demo", include_overview=True
        )

        assert guide.total_steps == ingested.chunk_count
        assert guide.project_overview is None
        assert len(guide.errors) == ingested.chunk_count + 1
        assert guide.errors[-1] == {
            "step_number": None,
            "message": "Unable to generate AI explanation. Error: down",
        }


def test_create_build_guide_generator_reads_settings(settings, vector_store, llm) -> None:
    generator = create_build_guide_generator(settings, vector_store=vector_store, llm=llm)

    assert generator.batch_size == 2
    assert generator.batch_delay_seconds == 0.0
    assert generator.max_steps == 200
