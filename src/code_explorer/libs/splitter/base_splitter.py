"""Base abstraction for text splitter strategies."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from code_explorer.core.trace.trace_context import TraceContext


DEFAULT_CHARS_PER_TOKEN = 4


def estimate_tokens(text: str, chars_per_token: int = DEFAULT_CHARS_PER_TOKEN) -> int:
    """Cheap token estimate: one token per *chars_per_token* characters, rounded up."""

    if not text:
        return 0
    return math.ceil(len(text) / chars_per_token)


@dataclass(frozen=True)
class TextSegment:
    """A contiguous piece of the input.

    Attributes:
        text: The segment text, i.e. input lines ``start_line..end_line``
            joined with ``\\n``.
        start_line: 1-based first line.
        end_line: 1-based last line, inclusive.
        symbol_name: Leading definition name, when the splitter knows it.
    """

    text: str
    start_line: int
    end_line: int
    symbol_name: str = ""


class BaseSplitter(ABC):
    """Abstract interface for splitter implementations."""

    @abstractmethod
    def split_text(
        self,
        text: str,
        language: str = "",
        trace: TraceContext | None = None,
    ) -> list[TextSegment]:
        """Split text into line-anchored segments.

        Args:
            text: Source text to split.
            language: Language key (e.g. ``"python"``); strategies that do
                not care about syntax ignore it.
            trace: Optional trace context object.

        Returns:
            Segments in source order. Empty or whitespace-only input
            returns an empty list.
        """
