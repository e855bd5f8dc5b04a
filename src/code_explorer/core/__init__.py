"""
Core Layer - Core business logic.

This package contains the core business logic including:
- Configuration management (settings.py)
- Shared chunk / result types (types.py)
- Query engines (search, chat, summarize, visualize, build guide)
- Trace collection
"""

__all__ = []
