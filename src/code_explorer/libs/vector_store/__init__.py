"""
Vector Store Module.

This package contains vector store abstractions and implementations:
- Base vector store class
- Vector store factory
- Provider implementations (Chroma)
"""

from code_explorer.libs.vector_store.base_vector_store import BaseVectorStore, VectorStoreError
from code_explorer.libs.vector_store.chroma_store import ChromaVectorStore
from code_explorer.libs.vector_store.vector_store_factory import VectorStoreFactory

VectorStoreFactory.register_provider("chroma", ChromaVectorStore)

__all__ = [
    "BaseVectorStore",
    "ChromaVectorStore",
    "VectorStoreError",
    "VectorStoreFactory",
]
