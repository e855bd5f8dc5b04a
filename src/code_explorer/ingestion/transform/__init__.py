"""
Transform Module.

Chunk enrichment steps run between chunking and embedding.
"""

from code_explorer.ingestion.transform.base_transform import BaseTransform
from code_explorer.ingestion.transform.chunk_annotator import ChunkAnnotator

__all__ = ["BaseTransform", "ChunkAnnotator"]
