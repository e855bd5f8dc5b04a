"""Definition-boundary splitter.

Python sources are parsed with :mod:`ast` and cut at top-level ``def``,
``async def`` and ``class`` statements (decorators stay with their
definition). Other languages are cut where a line starts a top-level
definition according to a per-language pattern. Each definition becomes
its own segment whatever the file size; code before the first definition
is a segment of its own.

Blocks that exceed the token budget are re-split with
:class:`TokenSplitter`; so is any file without recognisable boundaries.
"""

from __future__ import annotations

import ast
import logging
import re
from typing import Any, List, Optional, Tuple

from code_explorer.libs.splitter.base_splitter import (
    DEFAULT_CHARS_PER_TOKEN,
    BaseSplitter,
    TextSegment,
)
from code_explorer.libs.splitter.token_splitter import TokenSplitter

logger = logging.getLogger(__name__)

_JS_LIKE = (
    r"^(?:"
    r"(?:export\s+)?(?:default\s+)?(?:async\s+)?function\b|"
    r"(?:export\s+)?(?:const|let|var)\s+\w+\s*=\s*(?:async\s*)?(?:\(|function\b|\w+\s*=>)|"
    r"(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s|"
    r"(?:export\s+)?(?:interface|type|enum)\s+\w+"
    r")"
)

DEFINITION_PATTERNS: dict[str, re.Pattern[str]] = {
    "javascript": re.compile(_JS_LIKE),
    "typescript": re.compile(_JS_LIKE),
    "java": re.compile(
        r"^(?:(?:public|private|protected|static|final|abstract)\s+)*"
        r"(?:class|interface|enum|record)\s+\w+"
    ),
    "kotlin": re.compile(r"^(?:(?:private|internal|public|data|sealed|open)\s+)*(?:fun|class|object|interface)\s"),
    "go": re.compile(r"^(?:func|type)\s"),
    "rust": re.compile(r"^(?:pub(?:\([^)]*\))?\s+)?(?:async\s+)?(?:fn|struct|enum|impl|trait|mod)\s"),
    "c": re.compile(r"^(?:struct|typedef|enum)\s|^\w[\w\s\*]*\s+\**\w+\s*\([^;]*$"),
    "cpp": re.compile(r"^(?:class|struct|namespace|template)\b|^\w[\w\s\*&:<>]*\s+[\*&]*[\w:]+\s*\([^;]*$"),
    "csharp": re.compile(
        r"^\s{0,4}(?:(?:public|private|protected|internal|static|sealed|abstract|partial)\s+)*"
        r"(?:class|interface|enum|struct|record)\s+\w+"
    ),
    "php": re.compile(r"^(?:(?:abstract|final)\s+)?(?:function|class|interface|trait)\s"),
    "ruby": re.compile(r"^(?:def|class|module)\s"),
    "dart": re.compile(r"^(?:(?:abstract)\s+)?(?:class|mixin|extension|enum)\s|^\w[\w<>?]*\s+\w+\s*\("),
}

_SYMBOL_PATTERN = re.compile(
    r"\b(?:function|class|interface|type|enum|fn|struct|impl|trait|mod|def|func|fun|"
    r"object|module|record|namespace|mixin|extension)\s+\*?([A-Za-z_$][\w$]*)"
    r"|\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)"
)

# (start_line, end_line, symbol_name), 1-based inclusive
Block = Tuple[int, int, str]


def symbol_from_line(line: str) -> str:
    """Best-effort definition name from a definition's first line."""

    match = _SYMBOL_PATTERN.search(line)
    if not match:
        return ""
    return match.group(1) or match.group(2) or ""


class AstSplitter(BaseSplitter):
    """Split at top-level definition boundaries, bounded by a token budget."""

    def __init__(
        self,
        max_tokens: int = 400,
        overlap_tokens: int = 50,
        chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
    ) -> None:
        self.token_splitter = TokenSplitter(max_tokens, overlap_tokens, chars_per_token)
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Any) -> AstSplitter:
        config = settings.splitter
        return cls(
            max_tokens=int(config.get("max_tokens", 400)),
            overlap_tokens=int(config.get("overlap_tokens", 50)),
            chars_per_token=int(config.get("chars_per_token", DEFAULT_CHARS_PER_TOKEN)),
        )

    def _python_starts(self, text: str) -> Optional[List[Tuple[int, str]]]:
        try:
            tree = ast.parse(text)
        except (SyntaxError, ValueError) as e:
            logger.debug("ast.parse failed, falling back to token windows: %s", e)
            return None

        starts: List[Tuple[int, str]] = []
        for node in tree.body:
            if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
                first = min([node.lineno] + [d.lineno for d in node.decorator_list])
                starts.append((first, node.name))
        return starts

    def _pattern_starts(self, lines: List[str], language: str) -> Optional[List[Tuple[int, str]]]:
        pattern = DEFINITION_PATTERNS.get(language)
        if pattern is None:
            return None
        return [
            (i, symbol_from_line(line))
            for i, line in enumerate(lines, start=1)
            if pattern.match(line)
        ]

    def _blocks(self, lines: List[str], starts: List[Tuple[int, str]]) -> List[Block]:
        blocks: List[Block] = []
        first_start = starts[0][0]
        if first_start > 1:
            blocks.append((1, first_start - 1, ""))
        for index, (start, name) in enumerate(starts):
            end = starts[index + 1][0] - 1 if index + 1 < len(starts) else len(lines)
            blocks.append((start, end, name))
        return blocks

    def split_text(self, text: str, language: str = "", trace: Any = None) -> list[TextSegment]:
        if not text.strip():
            return []

        lines = text.splitlines()
        language = (language or "").lower()
        if language == "python":
            starts = self._python_starts(text)
        else:
            starts = self._pattern_starts(lines, language)

        if not starts:
            method = "token_fallback"
            segments = self.token_splitter.split_lines(list(enumerate(lines, start=1)))
        else:
            method = "ast" if language == "python" else "pattern"
            segments = []
            for start, end, name in self._blocks(lines, starts):
                block_lines = lines[start - 1:end]
                # drop trailing blank lines so ranges end on code
                while block_lines and not block_lines[-1].strip():
                    block_lines.pop()
                    end -= 1
                if not block_lines or not any(line.strip() for line in block_lines):
                    continue
                block_text = "\n".join(block_lines)
                if self.token_splitter.estimate(block_text) <= self.max_tokens:
                    segments.append(TextSegment(block_text, start, end, name))
                    continue
                for piece in self.token_splitter.split_lines(
                    list(enumerate(block_lines, start=start))
                ):
                    segments.append(TextSegment(piece.text, piece.start_line, piece.end_line, name))

        if trace is not None:
            trace.record_stage("split", {
                "method": method,
                "language": language,
                "segment_count": len(segments),
            })
        return segments
