"""Fixed-size line windows with overlap."""

from __future__ import annotations

from typing import Any

from code_explorer.libs.splitter.base_splitter import BaseSplitter, TextSegment


class LineSplitter(BaseSplitter):
    """Split text into windows of ``chunk_lines`` lines.

    Consecutive windows share ``overlap_lines`` lines. Windows made only of
    blank lines are dropped.
    """

    def __init__(self, chunk_lines: int = 60, overlap_lines: int = 10) -> None:
        if chunk_lines <= 0:
            raise ValueError(f"chunk_lines must be positive, got {chunk_lines}")
        if overlap_lines < 0:
            raise ValueError(f"overlap_lines must be non-negative, got {overlap_lines}")
        if overlap_lines >= chunk_lines:
            raise ValueError(
                f"overlap_lines ({overlap_lines}) must be smaller than chunk_lines ({chunk_lines})"
            )
        self.chunk_lines = chunk_lines
        self.overlap_lines = overlap_lines

    @classmethod
    def from_settings(cls, settings: Any) -> LineSplitter:
        config = settings.splitter
        return cls(
            chunk_lines=int(config.get("chunk_lines", 60)),
            overlap_lines=int(config.get("overlap_lines", 10)),
        )

    def split_text(self, text: str, language: str = "", trace: Any = None) -> list[TextSegment]:
        if not text.strip():
            return []

        lines = text.splitlines()
        segments: list[TextSegment] = []
        start = 0
        while start < len(lines):
            end = min(start + self.chunk_lines, len(lines))
            window = lines[start:end]
            if any(line.strip() for line in window):
                segments.append(TextSegment("\n".join(window), start + 1, end))
            if end == len(lines):
                break
            start = end - self.overlap_lines

        if trace is not None:
            trace.record_stage("split", {"method": "line", "segment_count": len(segments)})
        return segments
