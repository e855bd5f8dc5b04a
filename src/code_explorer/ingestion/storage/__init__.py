"""
Storage Module.

Writes embedded chunks to the configured vector store.
"""

from code_explorer.ingestion.storage.vector_upserter import VectorUpserter

__all__ = ["VectorUpserter"]
