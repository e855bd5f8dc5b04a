"""
Ingestion Pipeline - Offline codebase ingestion.

This package contains the ingestion pipeline:
- Code chunking
- Transform (annotation)
- Embedding
- Storage
- Session management
"""

__all__ = []
