"""
Trace Module.

This package contains tracing components:
- Trace context (per-ingestion / per-query stage records)
- Trace collector (JSON Lines persistence)
"""

from code_explorer.core.trace.trace_context import TraceContext
from code_explorer.core.trace.trace_collector import TraceCollector

__all__ = ['TraceContext', 'TraceCollector']
