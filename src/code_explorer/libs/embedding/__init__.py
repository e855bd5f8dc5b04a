"""
Embedding Module.

This package contains embedding service abstractions and implementations:
- Base embedding class
- Embedding factory
- Provider implementations (OpenAI, Novita)
"""

from code_explorer.libs.embedding.base_embedding import BaseEmbedding
from code_explorer.libs.embedding.embedding_factory import EmbeddingFactory
from code_explorer.libs.embedding.openai_embedding import (
    NovitaEmbedding,
    OpenAIEmbedding,
    OpenAIEmbeddingError,
)

EmbeddingFactory.register("openai", OpenAIEmbedding)
EmbeddingFactory.register("novita", NovitaEmbedding)

__all__ = [
    "BaseEmbedding",
    "EmbeddingFactory",
    "NovitaEmbedding",
    "OpenAIEmbedding",
    "OpenAIEmbeddingError",
]
