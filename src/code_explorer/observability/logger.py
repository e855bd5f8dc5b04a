"""Logging helpers.

- ``get_logger``: human-readable stderr logger. stdout is reserved for the
  MCP stdio transport, so nothing here ever writes to it.
- ``JSONFormatter``: one JSON object per record.
- ``get_trace_logger``: logger backed by a JSON Lines file handler.
- ``write_trace``: append a trace dict to ``logs/traces.jsonl``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from code_explorer.core.settings import resolve_path

_DEFAULT_TRACES_PATH = resolve_path("logs/traces.jsonl")

# Third-party loggers that echo request URLs or are chatty at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "chromadb")


def get_logger(name: str = "code-explorer", log_level: Optional[str] = None) -> logging.Logger:
    """Get a configured logger.

    Args:
        name: Logger name.
        log_level: Optional level name (e.g. ``"DEBUG"``). Defaults to INFO.

    Returns:
        Configured logger instance.
    """

    level = getattr(logging, log_level.upper(), logging.INFO) if log_level else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stderr,
    )

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    if log_level:
        logger.setLevel(level)
    return logger


def configure_logging(settings: Any) -> logging.Logger:
    """Configure root logging from ``observability.log_level``."""

    log_level = str(settings.observability.get("log_level", "INFO"))
    logger = get_logger(log_level=log_level)
    logging.getLogger().setLevel(getattr(logging, log_level.upper(), logging.INFO))
    return logger


class JSONFormatter(logging.Formatter):
    """Formatter emitting ``timestamp``, ``level``, ``logger``, ``message``.

    Attributes passed through ``extra=`` are merged into the object;
    values that are not JSON-serialisable are stringified.
    """

    _RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, val in record.__dict__.items():
            if key in self._RESERVED or key in payload:
                continue
            try:
                json.dumps(val)
            except (TypeError, ValueError):
                val = str(val)
            payload[key] = val

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False)


def get_trace_logger(
    traces_path: str | Path = _DEFAULT_TRACES_PATH,
    *,
    name: str = "code-explorer.trace",
) -> logging.Logger:
    """Return a non-propagating logger that appends JSON Lines to *traces_path*.

    Repeated calls with the same *name* reuse the existing handler.
    """
    path = Path(traces_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False

    return logger


def write_trace(
    trace_dict: Dict[str, Any],
    traces_path: str | Path = _DEFAULT_TRACES_PATH,
) -> None:
    """Append *trace_dict* as a single JSON line.

    Raises:
        OSError: If the file cannot be written.
    """
    path = Path(traces_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("a", encoding="utf-8") as fh:
        fh.write(json.dumps(trace_dict, ensure_ascii=False) + "\n")
