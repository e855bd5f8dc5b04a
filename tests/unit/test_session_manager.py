"""Unit tests for SessionManager."""

import pytest

from code_explorer.ingestion.session_manager import SessionManager


class TestListing:

    def test_list_sessions(self, ingested, vector_store) -> None:
        sessions = SessionManager(vector_store).list_sessions()

        assert [s.session_id for s in sessions] == ["demo"]
        assert sessions[0].chunk_count == ingested.chunk_count
        assert sessions[0].file_count == 4
        assert sessions[0].to_dict()["session_id"] == "demo"

    def test_empty_store(self, vector_store) -> None:
        assert SessionManager(vector_store).list_sessions() == []

    def test_list_files(self, ingested, vector_store) -> None:
        files = SessionManager(vector_store).list_files("demo")

        assert [f.file_path for f in files] == ["app/db.py", "app/main.py", "web/api.js", "web/index.js"]
        assert files[0].language == "python"
        assert files[2].language == "javascript"
        assert sum(f.chunk_count for f in files) == ingested.chunk_count

    def test_list_files_requires_session(self, vector_store) -> None:
        with pytest.raises(ValueError):
            SessionManager(vector_store).list_files("")

    def test_list_files_unknown_session(self, vector_store) -> None:
        with pytest.raises(LookupError, match="Session not found"):
            SessionManager(vector_store).list_files("missing")


class TestClearing:

    def test_session_exists(self, ingested, vector_store) -> None:
        manager = SessionManager(vector_store)
        assert manager.session_exists("demo") is True
        assert manager.session_exists("other") is False
        assert manager.session_exists("") is False

    def test_clear_session(self, ingested, vector_store) -> None:
        manager = SessionManager(vector_store)

        removed = manager.clear_session("demo")

        assert removed == ingested.chunk_count
        assert vector_store.count() == 0
        assert manager.clear_session("demo") == 0

    def test_clear_requires_session(self, vector_store) -> None:
        with pytest.raises(ValueError):
            SessionManager(vector_store).clear_session("")
