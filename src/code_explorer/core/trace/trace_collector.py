"""Trace collector: persists finished traces as JSON Lines.

Persistence goes through ``observability.logger.write_trace`` so that the
collector and ad-hoc trace writes produce identical lines.
"""

import logging
from pathlib import Path
from typing import List

from code_explorer.core.settings import resolve_path
from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.observability.logger import write_trace

logger = logging.getLogger(__name__)

_DEFAULT_TRACES_PATH = resolve_path("logs/traces.jsonl")


class TraceCollector:
    """Appends finished traces to a ``traces.jsonl`` file.

    Args:
        traces_path: Output file; parent directories are created on demand.
        enabled: When False, ``collect`` only finishes the trace.
    """

    def __init__(self, traces_path: str | Path = _DEFAULT_TRACES_PATH, enabled: bool = True) -> None:
        self._path = resolve_path(traces_path)
        self._enabled = enabled
        self._collected: List[str] = []

    @classmethod
    def from_settings(cls, settings) -> "TraceCollector":
        observability = settings.observability
        return cls(
            traces_path=observability.get("traces_path", "logs/traces.jsonl"),
            enabled=bool(observability.get("trace_enabled", True)),
        )

    def collect(self, trace: TraceContext) -> None:
        """Finish *trace* if needed and append it as one JSON line.

        Write failures are logged, never raised: losing a trace must not
        fail the request that produced it.
        """
        if trace.finished_at is None:
            trace.finish()
        if not self._enabled:
            return

        try:
            write_trace(trace.to_dict(), self._path)
        except OSError:
            logger.exception("Failed to write trace %s", trace.trace_id)
            return
        self._collected.append(trace.trace_id)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def collected_ids(self) -> List[str]:
        """Ids of traces written by this collector, in order."""
        return list(self._collected)
