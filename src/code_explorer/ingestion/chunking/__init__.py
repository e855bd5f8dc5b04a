"""
Chunking Module.

Splits loaded source files into CodeChunk records with structural metadata.
"""

from code_explorer.ingestion.chunking.code_chunker import CodeChunker, generate_chunk_id

__all__ = ["CodeChunker", "generate_chunk_id"]
