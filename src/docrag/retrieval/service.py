"""Retrieval orchestration built on top of the knowledge store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from docrag.embeddings.service import EmbeddingClient
from docrag.embeddings.store import KnowledgeStore
from docrag.errors import EmbeddingServiceError, StorageReadError
from docrag.models import RetrievedChunk
from docrag.services.boundary import call_boundary


@dataclass(frozen=True)
class RetrievalConfig:
    """Configuration for retrieval."""

    top_k: int = 5
    max_top_k: int | None = 20
    embedding_timeout_seconds: float | None = 60.0


class Retriever(Protocol):
    """Retrieve relevant chunks for a query string."""

    def retrieve(self, query: str, *, top_k: int | None = None) -> Sequence[RetrievedChunk]:
        """Return the top-k retrieved chunks."""


class VectorRetriever:
    """Embeds the query and runs a nearest-neighbour search over the store."""

    def __init__(self, embedder: EmbeddingClient, store: KnowledgeStore, config: RetrievalConfig | None = None) -> None:
        self._embedder = embedder
        self._store = store
        self._config = config or RetrievalConfig()

    def retrieve(self, query: str, *, top_k: int | None = None) -> Sequence[RetrievedChunk]:
        limit = top_k or self._config.top_k
        if self._config.max_top_k:
            limit = min(limit, self._config.max_top_k)
        limit = max(1, limit)
        vector = call_boundary(
            self._embedder.embed,
            query,
            timeout=self._config.embedding_timeout_seconds,
            error_cls=EmbeddingServiceError,
            operation="Query embedding",
        )
        return call_boundary(
            self._store.search,
            vector,
            limit,
            timeout=None,
            error_cls=StorageReadError,
            operation="Similarity search",
        )
