"""Static, regex-level analysis of source files.

Classifies a file (component, api route, config, style, test, utility),
pulls out import specifiers and exported names, tags a few well-known code
patterns, and ranks how central the file is to the project.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from typing import List

_JS_IMPORT = re.compile(r"""import\s+(?:[\w*{}\s,$]+?\s+from\s+)?['"]([^'"]+)['"]""")
_JS_REQUIRE = re.compile(r"""require\(\s*['"]([^'"]+)['"]\s*\)""")
_PY_IMPORT = re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)", re.MULTILINE)
_PY_FROM_IMPORT = re.compile(r"^\s*from\s+(\.*[\w.]*)\s+import\s", re.MULTILINE)

_JS_EXPORT = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?(?:function\*?|const|class|let|var|interface|type|enum)?\s*([A-Za-z0-9_$]+)"
)
_PY_PUBLIC_DEF = re.compile(r"^(?:async\s+def|def|class)\s+([A-Za-z][\w]*)", re.MULTILINE)

_TEST_NAME = re.compile(r"(^test_.*\.py$|_test\.(py|go)$|\.(test|spec)\.[jt]sx?$)")
_BRANCH_KEYWORDS = re.compile(r"\b(if|elif|else|for|while|case|catch|except|switch)\b|&&|\|\||\?")

ENTRY_POINT_NAMES = frozenset({
    "main.py", "__main__.py", "app.py", "manage.py", "server.py", "wsgi.py", "asgi.py",
    "index.js", "index.ts", "main.js", "main.ts", "server.js", "server.ts", "app.js", "app.ts",
    "layout.tsx", "page.tsx", "_app.tsx", "main.go", "main.rs", "lib.rs", "Program.cs",
})

MANIFEST_NAMES = frozenset({
    "package.json", "pyproject.toml", "setup.py", "requirements.txt", "go.mod",
    "Cargo.toml", "pom.xml", "build.gradle", "tsconfig.json", "Dockerfile",
})

# Chunk types whose file is kept as a single chunk when it fits the budget.
WHOLE_FILE_TYPES = frozenset({"component", "api", "config", "style"})


def detect_file_type(file_path: str, content: str) -> str:
    """Classify a file; earlier rules win.

    Returns:
        One of ``api``, ``test``, ``component``, ``config``, ``style``,
        ``utility``.
    """
    path = PurePosixPath(file_path)
    name = path.name
    posix = "/" + path.as_posix()

    if "/api/" in posix and path.stem == "route":
        return "api"
    if _TEST_NAME.search(name) or "/tests/" in posix or "/__tests__/" in posix:
        return "test"
    if "export default function" in content or (
        "export default" in content and "return (" in content
    ):
        return "component"
    if name.endswith(".json") or "config" in name.lower() or ".env" in name:
        return "config"
    if path.suffix.lower() in {".css", ".scss", ".sass"} or "@apply" in content:
        return "style"
    return "utility"


def extract_imports(content: str, language: str = "") -> List[str]:
    """Import specifiers in first-seen order, de-duplicated."""

    found: List[str] = []
    if language == "python":
        for match in _PY_IMPORT.finditer(content):
            found.extend(part.strip() for part in match.group(1).split(","))
        found.extend(m.group(1) for m in _PY_FROM_IMPORT.finditer(content))
    else:
        found.extend(m.group(1) for m in _JS_IMPORT.finditer(content))
        found.extend(m.group(1) for m in _JS_REQUIRE.finditer(content))
    return list(dict.fromkeys(spec for spec in found if spec))


def extract_exports(content: str, language: str = "") -> List[str]:
    """Exported names; for Python, public top-level definitions."""

    if language == "python":
        names = [m.group(1) for m in _PY_PUBLIC_DEF.finditer(content)]
    else:
        names = [m.group(1) for m in _JS_EXPORT.finditer(content)]
    return list(dict.fromkeys(name for name in names if name and name != "default"))


def detect_code_patterns(content: str, chunk_type: str, language: str = "") -> List[str]:
    patterns: List[str] = []
    if chunk_type == "component" and "useState" in content:
        patterns.append("react-hook")
    if chunk_type == "api" and "NextResponse" in content:
        patterns.append("nextjs-api-route")
    if re.search(r"\basync\s+(def|function)\b|\bawait\s", content):
        patterns.append("async-code")
    if re.search(r"^\s*(export\s+)?(default\s+)?class\s+\w+", content, re.MULTILINE):
        patterns.append("class-definition")
    if language == "python" and re.search(r"""^if\s+__name__\s*==\s*['"]__main__['"]""", content, re.MULTILINE):
        patterns.append("python-entrypoint")
    return patterns


def assess_importance(file_path: str, chunk_type: str, code_patterns: List[str]) -> str:
    """``critical`` for entry points and manifests, ``important`` for routes
    and components, otherwise ``supporting``."""

    name = PurePosixPath(file_path).name
    if name in ENTRY_POINT_NAMES or name in MANIFEST_NAMES or "python-entrypoint" in code_patterns:
        return "critical"
    if chunk_type in {"api", "component"}:
        return "important"
    return "supporting"


def assess_complexity(text: str) -> str:
    """Rule-based complexity from size and branching density."""

    lines = [line for line in text.splitlines() if line.strip()]
    branches = len(_BRANCH_KEYWORDS.findall(text))
    if len(lines) <= 15 and branches <= 2:
        return "simple"
    if len(lines) > 80 or branches > 15:
        return "complex"
    return "moderate"
