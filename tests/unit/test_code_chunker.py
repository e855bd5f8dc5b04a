"""Unit tests for code analysis rules and the CodeChunker."""

from __future__ import annotations

import re

import pytest

from code_explorer.core.types import CodeChunk, CodeFile
from code_explorer.ingestion.chunking.code_analysis import (
    assess_complexity,
    assess_importance,
    detect_code_patterns,
    detect_file_type,
    extract_exports,
    extract_imports,
)
from code_explorer.ingestion.chunking.code_chunker import CodeChunker, generate_chunk_id

CHUNK_ID = re.compile(r"^[0-9a-f]{8}_\d{4}_[0-9a-f]{8}$")


def _line_chunker(make_settings, **splitter) -> CodeChunker:
    config = {"type": "line", "chunk_lines": 20, "overlap_lines": 5, "max_tokens": 200}
    config.update(splitter)
    return CodeChunker(make_settings(splitter=config))


def _values_file(lines: int = 50) -> CodeFile:
    return CodeFile(
        path="pkg/values.py",
        content="\n".join(f"value_{i} = {i}" for i in range(1, lines + 1)) + "\n",
        language="python",
    )


# ============================================================================
# Code analysis
# ============================================================================


@pytest.mark.parametrize(
    "path,content,expected",
    [
        ("app/api/users/route.ts", "export async function GET() {}", "api"),
        ("tests/test_db.py", "def test_x(): pass", "test"),
        ("src/Button.test.tsx", "export default function X() {}", "test"),
        ("src/Button.tsx", "export default function Button() { return (<b/>); }", "component"),
        ("tsconfig.json", "{}", "config"),
        ("app/config.py", "DEBUG = True", "config"),
        ("styles/main.scss", "body { margin: 0; }", "style"),
        ("lib/util.py", "def helper(): pass", "utility"),
    ],
)
def test_detect_file_type(path: str, content: str, expected: str) -> None:
    assert detect_file_type(path, content) == expected


def test_extract_python_imports() -> None:
    content = "import os, sys\nfrom .models import User\nfrom app.db import connect\nimport os\n"
    assert extract_imports(content, "python") == ["os", "sys", ".models", "app.db"]


def test_extract_javascript_imports() -> None:
    content = (
        "import React from 'react';\n"
        "import { a } from './a';\n"
        "import './side.css';\n"
        "const x = require('../x');\n"
    )
    assert extract_imports(content, "javascript") == ["react", "./a", "./side.css", "../x"]


def test_extract_exports() -> None:
    js = "export default function App() {}\nexport const helper = 1;\nexport { x };\n"
    py = "def public():\n    def inner(): pass\nclass Model:\n    pass\nasync def run():\n    pass\ndef _private(): pass\n"

    assert extract_exports(js, "javascript") == ["App", "helper"]
    assert extract_exports(py, "python") == ["public", "Model", "run"]


def test_detect_code_patterns() -> None:
    content = "class A:\n    async def go(self):\n        await x()\n\nif __name__ == '__main__':\n    A()\n"
    assert detect_code_patterns(content, "utility", "python") == [
        "async-code",
        "class-definition",
        "python-entrypoint",
    ]
    assert detect_code_patterns("const [a, b] = useState(0)", "component") == ["react-hook"]


@pytest.mark.parametrize(
    "path,chunk_type,patterns,expected",
    [
        ("src/main.py", "utility", [], "critical"),
        ("package.json", "config", [], "critical"),
        ("tools/run.py", "utility", ["python-entrypoint"], "critical"),
        ("src/Button.tsx", "component", [], "important"),
        ("lib/util.py", "utility", [], "supporting"),
    ],
)
def test_assess_importance(path: str, chunk_type: str, patterns: list, expected: str) -> None:
    assert assess_importance(path, chunk_type, patterns) == expected


def test_assess_complexity() -> None:
    assert assess_complexity("x = 1\ny = 2") == "simple"
    branchy = "\n".join(f"if a{i}:\n    b = {i}" for i in range(20))
    assert assess_complexity(branchy) == "complex"
    medium = "\n".join(f"line_{i} = {i}" for i in range(30))
    assert assess_complexity(medium) == "moderate"


# ============================================================================
# CodeChunker
# ============================================================================


class TestCodeChunker:

    def test_chunks_carry_session_path_and_line_ranges(self, make_settings) -> None:
        chunks = _line_chunker(make_settings).chunk_file(_values_file(), "session-1")

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 20), (16, 35), (31, 50)]
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        assert all(c.session_id == "session-1" for c in chunks)
        assert all(c.file_path == "pkg/values.py" for c in chunks)
        assert all(c.language == "python" and c.chunk_type == "utility" for c in chunks)
        assert chunks[1].text.splitlines()[0] == "value_16 = 16"

    def test_chunk_ids_are_deterministic_and_well_formed(self, make_settings) -> None:
        chunker = _line_chunker(make_settings)

        first = [c.id for c in chunker.chunk_file(_values_file(), "s1")]
        second = [c.id for c in chunker.chunk_file(_values_file(), "s1")]
        other_session = [c.id for c in chunker.chunk_file(_values_file(), "s2")]

        assert first == second
        assert all(CHUNK_ID.match(chunk_id) for chunk_id in first)
        assert len(set(first)) == len(first)
        assert set(first).isdisjoint(other_session)

    def test_generate_chunk_id_depends_on_content(self) -> None:
        assert generate_chunk_id("s", "a.py", 0, "x") != generate_chunk_id("s", "a.py", 0, "y")
        assert generate_chunk_id("s", "a.py", 3, "x").split("_")[1] == "0003"

    def test_component_files_stay_whole(self, make_settings) -> None:
        content = "\n".join(
            ["export default function App() {"]
            + [f"  const v{i} = {i};" for i in range(30)]
            + ["  return (<div/>);", "}"]
        )
        code_file = CodeFile(path="src/App.jsx", content=content, language="javascript")

        chunks = _line_chunker(make_settings, max_tokens=400).chunk_file(code_file, "s1")

        assert len(chunks) == 1
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 33)
        assert chunks[0].chunk_type == "component"
        assert chunks[0].importance == "important"

    def test_file_level_metadata_is_shared_and_exports_are_per_chunk(self, make_settings) -> None:
        content = "import os\n\n" + "\n".join(f"def func_{i}():\n    return {i}\n" for i in range(15))
        code_file = CodeFile(path="lib/funcs.py", content=content, language="python")

        chunks = _line_chunker(make_settings).chunk_file(code_file, "s1")

        assert len(chunks) > 1
        assert all(c.imports == ["os"] for c in chunks)
        assert "func_0" in chunks[0].exports
        assert "func_14" not in chunks[0].exports
        assert "func_14" in chunks[-1].exports

    def test_exports_match_whole_identifiers_only(self, make_settings) -> None:
        content = (
            "def get():\n"
            "    return 1\n"
            "\n"
            "\n"
            "def getter():\n"
            "    return target\n"
        )
        code_file = CodeFile(path="lib/access.py", content=content, language="python")
        chunker = CodeChunker(make_settings(splitter={"type": "ast", "max_tokens": 200}))

        chunks = chunker.chunk_file(code_file, "s1")

        assert [c.symbol_name for c in chunks] == ["get", "getter"]
        assert chunks[0].exports == ["get"]
        assert chunks[1].exports == ["getter"]

    def test_blank_file_yields_no_chunks(self, make_settings) -> None:
        code_file = CodeFile(path="empty.py", content="\n\n  \n", language="python")
        assert _line_chunker(make_settings).chunk_file(code_file, "s1") == []

    def test_missing_session_id_raises(self, make_settings) -> None:
        with pytest.raises(ValueError, match="session_id"):
            _line_chunker(make_settings).chunk_file(_values_file(), "")

    def test_chunk_files_preserves_file_order(self, make_settings) -> None:
        files = [
            CodeFile(path="b.py", content="b = 1\n", language="python"),
            CodeFile(path="a.py", content="a = 1\n", language="python"),
        ]
        chunks = _line_chunker(make_settings).chunk_files(files, "s1")
        assert [c.file_path for c in chunks] == ["b.py", "a.py"]


def test_chunk_metadata_round_trip_keeps_lists() -> None:
    chunk = CodeChunk(
        id="abc",
        session_id="s1",
        file_path="web/index.js",
        text="import x from './x'",
        start_line=1,
        end_line=1,
        imports=["./x", "react"],
        code_patterns=["async-code"],
    )

    metadata = chunk.to_metadata()
    restored = CodeChunk.from_record({"id": "abc", "text": chunk.text, "metadata": metadata})

    assert metadata["imports"] == "./x,react"
    assert metadata["file_extension"] == ".js"
    assert restored.imports == ["./x", "react"]
    assert restored.exports == []
    assert restored.file_name == "index.js"
