"""Local source tree loader.

Walks a directory (or reads a single file), keeps files whose extension is
on the code allow-list, prunes dependency and VCS directories, lock files
and OS litter, and skips empty, oversized or undecodable files.
"""

from __future__ import annotations

import logging
import os
import uuid
from pathlib import Path, PurePosixPath
from typing import Iterator, List

from code_explorer.core.types import CodeFile
from code_explorer.libs.loader.base_loader import BaseLoader

logger = logging.getLogger(__name__)

CODE_EXTENSIONS = frozenset({
    ".js", ".ts", ".jsx", ".tsx", ".py", ".java", ".cpp", ".c", ".h", ".cs",
    ".php", ".rb", ".go", ".rs", ".html", ".css", ".scss", ".sass", ".json",
    ".xml", ".yaml", ".yml", ".md", ".txt", ".sql", ".sh", ".bat", ".vue",
    ".svelte", ".dart", ".kt",
})

IGNORED_DIRS = frozenset({
    "node_modules", ".git", "dist", "build", ".next", "__pycache__",
    ".vscode", ".idea", ".venv", "venv", ".tox", ".mypy_cache", ".pytest_cache",
})

IGNORED_FILES = frozenset({
    "package-lock.json", "yarn.lock", "pnpm-lock.yaml", ".DS_Store",
    "Thumbs.db", ".gitignore",
})

EXTENSION_TO_LANGUAGE = {
    ".py": "python",
    ".js": "javascript", ".jsx": "javascript", ".vue": "javascript", ".svelte": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".java": "java", ".kt": "kotlin", ".dart": "dart",
    ".go": "go", ".rs": "rust",
    ".c": "c", ".h": "c", ".cpp": "cpp", ".cs": "csharp",
    ".php": "php", ".rb": "ruby",
    ".html": "html", ".xml": "xml",
    ".css": "css", ".scss": "css", ".sass": "css",
    ".json": "json", ".yaml": "yaml", ".yml": "yaml",
    ".md": "markdown", ".txt": "plaintext",
    ".sql": "sql", ".sh": "shell", ".bat": "batch",
}


def new_session_id() -> str:
    """Mint an opaque session id."""

    return str(uuid.uuid4())


def language_for(path: str) -> str:
    return EXTENSION_TO_LANGUAGE.get(PurePosixPath(path).suffix.lower(), "plaintext")


def is_ignored(relative_path: str) -> bool:
    """True if any directory component or the file name is on an ignore list."""

    parts = PurePosixPath(relative_path).parts
    if not parts:
        return False
    if any(part in IGNORED_DIRS for part in parts[:-1]):
        return True
    name = parts[-1]
    return name in IGNORED_FILES or name.endswith((".min.js", ".min.css"))


def is_code_file(relative_path: str) -> bool:
    return PurePosixPath(relative_path).suffix.lower() in CODE_EXTENSIONS


class CodeLoader(BaseLoader):
    """Load accepted source files from a local path.

    Args:
        max_file_bytes: Files larger than this are skipped.
    """

    def __init__(self, max_file_bytes: int = 1_000_000) -> None:
        self.max_file_bytes = max_file_bytes
        self.skipped: List[str] = []

    @classmethod
    def from_settings(cls, settings) -> CodeLoader:
        return cls(max_file_bytes=int(settings.ingestion.get("max_file_bytes", 1_000_000)))

    def _walk(self, root: Path) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
            for filename in sorted(filenames):
                yield Path(dirpath) / filename

    def _read(self, file_path: Path, relative: str) -> CodeFile | None:
        if is_ignored(relative) or not is_code_file(relative):
            self.skipped.append(relative)
            return None

        size = file_path.stat().st_size
        if size > self.max_file_bytes:
            logger.info("Skipping %s: %d bytes exceeds limit of %d", relative, size, self.max_file_bytes)
            self.skipped.append(relative)
            return None

        try:
            content = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.info("Skipping %s: not valid UTF-8", relative)
            self.skipped.append(relative)
            return None

        if not content.strip():
            self.skipped.append(relative)
            return None

        return CodeFile(path=relative, content=content, language=language_for(relative), size=size)

    def load(self, path: str | Path) -> List[CodeFile]:
        root = self._validate_path(path)
        self.skipped = []

        if root.is_file():
            if is_ignored(root.name) or not is_code_file(root.name):
                raise ValueError(
                    f"Unsupported file type: {root.suffix or root.name}. "
                    f"Supported: {', '.join(sorted(CODE_EXTENSIONS))}"
                )
            code_file = self._read(root, root.name)
            return [code_file] if code_file else []

        files: List[CodeFile] = []
        for file_path in self._walk(root):
            relative = file_path.relative_to(root).as_posix()
            code_file = self._read(file_path, relative)
            if code_file is not None:
                files.append(code_file)

        logger.info("Loaded %d code files from %s (%d skipped)", len(files), root, len(self.skipped))
        return files
