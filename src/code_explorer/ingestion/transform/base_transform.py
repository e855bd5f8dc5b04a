"""Base class for chunk transforms run between chunking and embedding."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.core.types import CodeChunk


class BaseTransform(ABC):
    """A step that enriches chunks in place and returns them in order."""

    @abstractmethod
    def transform(
        self,
        chunks: List[CodeChunk],
        trace: Optional[TraceContext] = None,
    ) -> List[CodeChunk]:
        """Return *chunks*, enriched, in the same order."""
