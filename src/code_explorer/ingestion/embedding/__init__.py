"""
Embedding Stage Module.

Batched embedding of chunks for the ingestion pipeline.
"""

from code_explorer.ingestion.embedding.batch_processor import BatchProcessor, BatchResult

__all__ = ["BatchProcessor", "BatchResult"]
