"""Token-budgeted windows that break only at line boundaries."""

from __future__ import annotations

from typing import Any, List, Sequence, Tuple

from code_explorer.libs.splitter.base_splitter import (
    DEFAULT_CHARS_PER_TOKEN,
    BaseSplitter,
    TextSegment,
    estimate_tokens,
)

# (1-based line number, line text)
NumberedLine = Tuple[int, str]


class TokenSplitter(BaseSplitter):
    """Pack whole lines into windows of at most ``max_tokens`` estimated tokens.

    Each new window starts with the trailing lines of the previous window
    whose combined estimate is at most ``overlap_tokens``. A line that on
    its own exceeds ``max_tokens`` is cut into character pieces; every
    piece reports that line's number as both start and end.
    """

    def __init__(
        self,
        max_tokens: int = 400,
        overlap_tokens: int = 50,
        chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
    ) -> None:
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        if overlap_tokens < 0 or overlap_tokens >= max_tokens:
            raise ValueError(
                f"overlap_tokens must be in [0, max_tokens), got {overlap_tokens}"
            )
        if chars_per_token <= 0:
            raise ValueError(f"chars_per_token must be positive, got {chars_per_token}")
        self.max_tokens = max_tokens
        self.overlap_tokens = overlap_tokens
        self.chars_per_token = chars_per_token

    @classmethod
    def from_settings(cls, settings: Any) -> TokenSplitter:
        config = settings.splitter
        return cls(
            max_tokens=int(config.get("max_tokens", 400)),
            overlap_tokens=int(config.get("overlap_tokens", 50)),
            chars_per_token=int(config.get("chars_per_token", DEFAULT_CHARS_PER_TOKEN)),
        )

    def estimate(self, text: str) -> int:
        return estimate_tokens(text, self.chars_per_token)

    def _window_tokens(self, window: Sequence[NumberedLine]) -> int:
        return self.estimate("\n".join(line for _, line in window))

    def _overlap_tail(self, window: Sequence[NumberedLine]) -> List[NumberedLine]:
        tail: List[NumberedLine] = []
        for numbered in reversed(window):
            candidate = [numbered] + tail
            if self._window_tokens(candidate) > self.overlap_tokens:
                break
            tail = candidate
        return tail

    def _hard_split(self, line_no: int, line: str) -> List[TextSegment]:
        width = self.max_tokens * self.chars_per_token
        return [
            TextSegment(line[i:i + width], line_no, line_no)
            for i in range(0, len(line), width)
        ]

    def split_lines(self, numbered_lines: Sequence[NumberedLine]) -> List[TextSegment]:
        """Split pre-numbered lines; used directly by boundary-aware splitters."""
        segments: List[TextSegment] = []
        window: List[NumberedLine] = []
        # number of leading lines in `window` carried over as overlap
        carried = 0

        def flush() -> None:
            fresh = window[carried:]
            if any(line.strip() for _, line in fresh):
                segments.append(TextSegment(
                    "\n".join(line for _, line in window),
                    window[0][0],
                    window[-1][0],
                ))

        for line_no, line in numbered_lines:
            if self.estimate(line) > self.max_tokens:
                if window:
                    flush()
                window, carried = [], 0
                segments.extend(self._hard_split(line_no, line))
                continue

            candidate = window + [(line_no, line)]
            if self._window_tokens(candidate) <= self.max_tokens:
                window = candidate
                continue

            flush()
            window = self._overlap_tail(window)
            while window and self._window_tokens(window + [(line_no, line)]) > self.max_tokens:
                window.pop(0)
            carried = len(window)
            window.append((line_no, line))

        if window:
            flush()
        return segments

    def split_text(self, text: str, language: str = "", trace: Any = None) -> list[TextSegment]:
        if not text.strip():
            return []

        segments = self.split_lines(list(enumerate(text.splitlines(), start=1)))

        if trace is not None:
            trace.record_stage("split", {"method": "token", "segment_count": len(segments)})
        return segments
