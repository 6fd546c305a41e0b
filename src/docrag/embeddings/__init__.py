"""Embedding clients and the knowledge store."""

from .service import EmbeddingClient, EmbeddingConfig, HashEmbeddingClient, LangChainEmbeddingClient
from .store import ChromaKnowledgeStore, KnowledgeStore

__all__ = [
    "ChromaKnowledgeStore",
    "EmbeddingClient",
    "EmbeddingConfig",
    "HashEmbeddingClient",
    "KnowledgeStore",
    "LangChainEmbeddingClient",
]
