"""
Libs Layer - Pluggable abstraction layer.

This package contains the factory pattern implementations for
pluggable components:
- LLM clients
- Embedding services
- Splitters
- Vector stores
- Loaders
"""

__all__ = []
