"""Trace context shared by the ingestion pipeline and the query engines.

A trace carries an id, its type, the session it belongs to, and an
ordered list of stage records with optional timings.
"""

import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Literal, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class TraceContext:
    """Request-scoped record of pipeline stages and timing.

    Attributes:
        trace_type: ``"ingestion"`` or ``"query"``.
        session_id: Session the traced work belongs to, if known.
        trace_id: Unique identifier for this trace.
        started_at: ISO-8601 creation time.
        finished_at: ISO-8601 time ``finish()`` was called, or None.
        stages: Recorded stage entries, in order.
        metadata: Free-form key/value pairs.
    """

    trace_type: Literal["query", "ingestion"] = "query"
    session_id: Optional[str] = None
    trace_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: str = field(default_factory=_now_iso)
    finished_at: Optional[str] = field(default=None)
    stages: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    _start_mono: float = field(default_factory=time.monotonic, repr=False)
    _finish_mono: Optional[float] = field(default=None, repr=False)
    _stage_timings: Dict[str, float] = field(default_factory=dict, repr=False)

    def record_stage(
        self,
        stage_name: str,
        data: Dict[str, Any],
        elapsed_ms: Optional[float] = None,
    ) -> None:
        """Append a stage entry.

        Args:
            stage_name: Stage key, e.g. ``"chunk"`` or ``"embed"``.
            data: Stage payload; must be JSON-serialisable.
            elapsed_ms: Optional stage duration in milliseconds.
        """
        entry: Dict[str, Any] = {
            "stage": stage_name,
            "timestamp": _now_iso(),
            "data": data,
        }
        if elapsed_ms is not None:
            entry["elapsed_ms"] = round(elapsed_ms, 2)
            self._stage_timings[stage_name] = elapsed_ms
        self.stages.append(entry)

    @contextmanager
    def stage_timer(self, stage_name: str) -> Iterator[Dict[str, Any]]:
        """Time a block and record it as a stage.

        The yielded dict becomes the stage payload, so callers can fill it
        in while the block runs. The stage is recorded even if the block
        raises, with the exception message under ``"error"``.
        """
        data: Dict[str, Any] = {}
        t0 = time.monotonic()
        try:
            yield data
        except Exception as exc:
            data["error"] = str(exc)
            raise
        finally:
            self.record_stage(stage_name, data, elapsed_ms=(time.monotonic() - t0) * 1000.0)

    def finish(self) -> None:
        """Mark the trace as finished."""
        self._finish_mono = time.monotonic()
        self.finished_at = _now_iso()

    def elapsed_ms(self, stage_name: Optional[str] = None) -> float:
        """Return elapsed milliseconds for a stage, or for the whole trace.

        Raises:
            KeyError: If *stage_name* has no recorded timing.
        """
        if stage_name is not None:
            if stage_name not in self._stage_timings:
                raise KeyError(f"Stage '{stage_name}' has no recorded timing")
            return self._stage_timings[stage_name]

        end = self._finish_mono if self._finish_mono is not None else time.monotonic()
        return (end - self._start_mono) * 1000.0

    def get_stage_data(self, stage_name: str) -> Optional[Dict[str, Any]]:
        """Return the payload of the most recent stage named *stage_name*."""
        for entry in reversed(self.stages):
            if entry.get("stage") == stage_name:
                return entry.get("data")
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to a plain dict suitable for ``json.dumps``."""
        return {
            "trace_id": self.trace_id,
            "trace_type": self.trace_type,
            "session_id": self.session_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "total_elapsed_ms": round(self.elapsed_ms(), 2),
            "stages": list(self.stages),
            "metadata": dict(self.metadata),
        }
