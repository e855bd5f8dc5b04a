"""Tests for TraceContext and TraceCollector."""

import json

import pytest

from code_explorer.core.trace.trace_collector import TraceCollector
from code_explorer.core.trace.trace_context import TraceContext


# ── TraceContext basics ──────────────────────────────────────────────

class TestTraceContextInit:
    """Verify constructor defaults and trace_type."""

    def test_default_trace_type_is_query(self) -> None:
        tc = TraceContext()
        assert tc.trace_type == "query"

    def test_ingestion_trace_type_and_session(self) -> None:
        tc = TraceContext(trace_type="ingestion", session_id="s1")
        assert tc.trace_type == "ingestion"
        assert tc.session_id == "s1"

    def test_trace_id_is_uuid(self) -> None:
        tc = TraceContext()
        assert len(tc.trace_id) == 36

    def test_finished_at_initially_none(self) -> None:
        tc = TraceContext()
        assert tc.finished_at is None
        assert tc.stages == []


# ── Stages ───────────────────────────────────────────────────────────

class TestRecordStage:

    def test_record_stage_appends_in_order(self) -> None:
        tc = TraceContext()
        tc.record_stage("load", {"file_count": 3})
        tc.record_stage("chunk", {"chunk_count": 9}, elapsed_ms=12.345)

        assert [s["stage"] for s in tc.stages] == ["load", "chunk"]
        assert tc.stages[1]["elapsed_ms"] == 12.35
        assert "elapsed_ms" not in tc.stages[0]

    def test_elapsed_ms_for_stage(self) -> None:
        tc = TraceContext()
        tc.record_stage("embed", {}, elapsed_ms=40.0)
        assert tc.elapsed_ms("embed") == 40.0

    def test_elapsed_ms_unknown_stage_raises(self) -> None:
        with pytest.raises(KeyError):
            TraceContext().elapsed_ms("missing")

    def test_get_stage_data_returns_latest(self) -> None:
        tc = TraceContext()
        tc.record_stage("search", {"result_count": 1})
        tc.record_stage("search", {"result_count": 4})
        assert tc.get_stage_data("search") == {"result_count": 4}
        assert tc.get_stage_data("chat") is None

    def test_stage_timer_records_payload(self) -> None:
        tc = TraceContext()
        with tc.stage_timer("visualize") as data:
            data["node_count"] = 2
        stage = tc.stages[0]
        assert stage["stage"] == "visualize"
        assert stage["data"] == {"node_count": 2}
        assert stage["elapsed_ms"] >= 0

    def test_stage_timer_records_errors_and_reraises(self) -> None:
        tc = TraceContext()
        with pytest.raises(RuntimeError):
            with tc.stage_timer("embed"):
                raise RuntimeError("boom")
        assert tc.stages[0]["data"]["error"] == "boom"


class TestSerialisation:

    def test_to_dict_is_json_serialisable(self) -> None:
        tc = TraceContext(trace_type="query", session_id="abc")
        tc.metadata["tool"] = "search_code"
        tc.record_stage("search", {"top_k": 5}, elapsed_ms=1.0)
        tc.finish()

        payload = json.loads(json.dumps(tc.to_dict()))
        assert payload["session_id"] == "abc"
        assert payload["finished_at"] is not None
        assert payload["metadata"] == {"tool": "search_code"}
        assert payload["stages"][0]["stage"] == "search"


# ── TraceCollector ───────────────────────────────────────────────────

class TestTraceCollector:

    def test_collect_writes_one_json_line_per_trace(self, tmp_path) -> None:
        path = tmp_path / "logs" / "traces.jsonl"
        collector = TraceCollector(traces_path=path)
        first, second = TraceContext(), TraceContext(trace_type="ingestion")

        collector.collect(first)
        collector.collect(second)

        lines = path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["trace_id"] for line in lines] == [first.trace_id, second.trace_id]
        assert collector.collected_ids == [first.trace_id, second.trace_id]

    def test_collect_finishes_trace(self, tmp_path) -> None:
        tc = TraceContext()
        TraceCollector(traces_path=tmp_path / "t.jsonl").collect(tc)
        assert tc.finished_at is not None

    def test_disabled_collector_writes_nothing(self, tmp_path) -> None:
        path = tmp_path / "t.jsonl"
        tc = TraceContext()
        collector = TraceCollector(traces_path=path, enabled=False)

        collector.collect(tc)

        assert not path.exists()
        assert tc.finished_at is not None
        assert collector.collected_ids == []

    def test_from_settings(self, make_settings, tmp_path) -> None:
        settings = make_settings(observability={"traces_path": str(tmp_path / "x.jsonl"), "trace_enabled": True})
        collector = TraceCollector.from_settings(settings)
        assert collector.path == tmp_path / "x.jsonl"

    def test_write_failure_is_logged_not_raised(self, tmp_path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        collector = TraceCollector(traces_path=blocker / "traces.jsonl")

        collector.collect(TraceContext())

        assert collector.collected_ids == []
