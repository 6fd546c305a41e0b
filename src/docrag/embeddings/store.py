"""Knowledge store implementations."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence

import chromadb
from chromadb.api import ClientAPI

from docrag.errors import StorageReadError, StorageWriteError
from docrag.metrics.observability import get_logger
from docrag.models import DocumentMetadata, RetrievedChunk, StoredChunk

_PAGE_SIZE = 1000
_SCORE_EPSILON = 1e-9


class KnowledgeStore(Protocol):
    """Protocol for chunk/embedding persistence backends."""

    def insert_chunk(
        self,
        document_id: str,
        chunk_index: int,
        content: str,
        embedding: Sequence[float],
        metadata: DocumentMetadata,
    ) -> None:
        """Persist one chunk row. Raises ``StorageWriteError``."""

    def search(self, query_embedding: Sequence[float], k: int) -> Sequence[RetrievedChunk]:
        """Return at most ``k`` chunks by descending similarity."""

    def get_by_document_id(self, document_id: str) -> Sequence[StoredChunk]:
        """Return a document's chunks ordered by ``chunk_index``."""

    def delete_by_document_id(self, document_id: str) -> int:
        """Remove every chunk of the document and return how many were removed."""

    def list_documents(self) -> Sequence[DocumentMetadata]:
        """Return one metadata entry per stored document."""

    def count(self) -> int:
        """Return total number of stored chunks."""


class ChromaKnowledgeStore:
    """Chroma-backed knowledge store using cosine distance."""

    _logger = get_logger("store")

    def __init__(
        self,
        collection_name: str = "docrag",
        *,
        client: ClientAPI | None = None,
        persist_directory: str | Path | None = None,
        dimension: int | None = None,
    ) -> None:
        if client is not None:
            self._client = client
        elif persist_directory is not None:
            self._client = chromadb.PersistentClient(path=str(persist_directory))
        else:
            self._client = chromadb.EphemeralClient()
        self._collection = self._client.get_or_create_collection(
            name=collection_name,
            metadata={"hnsw:space": "cosine"},
            embedding_function=None,
        )
        self._dimension = dimension
        self._last_seq = 0
        self._sequence_lock = threading.Lock()

    def insert_chunk(
        self,
        document_id: str,
        chunk_index: int,
        content: str,
        embedding: Sequence[float],
        metadata: DocumentMetadata,
    ) -> None:
        vector = [float(value) for value in embedding]
        if self._dimension is not None and len(vector) != self._dimension:
            raise StorageWriteError(
                f"Embedding has dimension {len(vector)}, store expects {self._dimension}",
                document_id=document_id,
            )
        record = metadata.to_record(chunk_index)
        with self._sequence_lock:
            # Wall clock in ns, forced strictly increasing for this store.
            self._last_seq = max(self._last_seq + 1, time.time_ns())
            record["inserted_seq"] = self._last_seq
        try:
            self._collection.upsert(
                ids=[_chunk_id(document_id, chunk_index)],
                documents=[content],
                embeddings=[vector],
                metadatas=[record],
            )
        except Exception as exc:
            raise StorageWriteError(
                f"Failed to store chunk {chunk_index} of {document_id}: {exc}",
                document_id=document_id,
            ) from exc

    def search(self, query_embedding: Sequence[float], k: int) -> Sequence[RetrievedChunk]:
        """Top ``k`` chunks by similarity; equal scores keep insertion order.

        The index decides which of several tied rows it returns, so the query
        is widened until the row after the k-th scores strictly lower (or the
        whole collection is fetched) before ties are ordered.
        """

        if k <= 0:
            return []
        vector = [float(value) for value in query_embedding]
        try:
            available = self._collection.count()
            if available == 0:
                return []
            n_results = min(k + 1, available)
            while True:
                results = self._collection.query(
                    query_embeddings=[vector],
                    n_results=n_results,
                    include=["documents", "metadatas", "distances"],
                )
                ranked = self._deserialize_results(results)
                if n_results >= available or len(ranked) <= k:
                    break
                if ranked[-1].score < ranked[k - 1].score - _SCORE_EPSILON:
                    break
                n_results = min(n_results * 2, available)
        except Exception as exc:
            raise StorageReadError(f"Similarity search failed: {exc}") from exc
        return ranked[:k]

    def get_by_document_id(self, document_id: str) -> Sequence[StoredChunk]:
        try:
            batch = self._collection.get(
                where={"document_id": document_id},
                include=["documents", "metadatas", "embeddings"],
            )
        except Exception as exc:
            raise StorageReadError(f"Failed to load chunks for {document_id}: {exc}") from exc
        documents = batch.get("documents") or []
        metadatas = batch.get("metadatas") or []
        embeddings = batch.get("embeddings")
        if embeddings is None:
            embeddings = [None] * len(documents)
        chunks = [
            self._deserialize_chunk(document, metadata, embedding)
            for document, metadata, embedding in zip(documents, metadatas, embeddings)
        ]
        chunks.sort(key=lambda chunk: chunk.chunk_index)
        return chunks

    def delete_by_document_id(self, document_id: str) -> int:
        try:
            ids = self._collection.get(where={"document_id": document_id}, include=[]).get("ids") or []
            if ids:
                self._collection.delete(ids=list(ids))
        except Exception as exc:
            raise StorageWriteError(f"Failed to delete chunks for {document_id}: {exc}", document_id=document_id) from exc
        self._logger.info("store.delete", document_id=document_id, chunks_deleted=len(ids))
        return len(ids)

    def list_documents(self) -> Sequence[DocumentMetadata]:
        seen: Dict[str, DocumentMetadata] = {}
        for metadata in self._iter_metadatas():
            doc_id = metadata.get("document_id")
            if not doc_id or doc_id in seen:
                continue
            seen[str(doc_id)] = DocumentMetadata.from_record(metadata)
        return sorted(seen.values(), key=lambda doc: (doc.upload_date, doc.document_id))

    def count(self) -> int:
        try:
            return int(self._collection.count())
        except Exception as exc:
            raise StorageReadError(f"Failed to count chunks: {exc}") from exc

    def reset(self) -> None:
        ids = list(self._iter_ids())
        for start in range(0, len(ids), _PAGE_SIZE):
            self._collection.delete(ids=ids[start : start + _PAGE_SIZE])

    def _iter_metadatas(self) -> Iterable[Mapping[str, Any]]:
        offset = 0
        try:
            while True:
                batch = self._collection.get(include=["metadatas"], limit=_PAGE_SIZE, offset=offset)
                metadatas = batch.get("metadatas") or []
                for metadata in metadatas:
                    if isinstance(metadata, Mapping):
                        yield metadata
                if len(metadatas) < _PAGE_SIZE:
                    break
                offset += _PAGE_SIZE
        except Exception as exc:
            raise StorageReadError(f"Failed to scan stored chunks: {exc}") from exc

    def _iter_ids(self) -> Iterable[str]:
        offset = 0
        while True:
            ids = self._collection.get(include=[], limit=_PAGE_SIZE, offset=offset).get("ids") or []
            yield from ids
            if len(ids) < _PAGE_SIZE:
                break
            offset += _PAGE_SIZE

    def _deserialize_results(self, results: Mapping[str, object]) -> List[RetrievedChunk]:
        documents = self._first(results.get("documents"))
        metadatas = self._first(results.get("metadatas"))
        distances = self._first(results.get("distances"))
        ranked: list[tuple[RetrievedChunk, int]] = []
        for position, (document, metadata) in enumerate(zip(documents, metadatas)):
            distance = distances[position] if position < len(distances) else None
            score = 1.0 - float(distance) if distance is not None else 0.0
            chunk = self._deserialize_chunk(document, metadata, None)
            ranked.append((RetrievedChunk(chunk=chunk, score=score), int(metadata.get("inserted_seq", 0))))
        # Stable order: similarity first, then insertion order for equal scores.
        ranked.sort(key=lambda pair: (-pair[0].score, pair[1]))
        return [item for item, _ in ranked]

    @staticmethod
    def _deserialize_chunk(document: str, metadata: Mapping[str, Any], embedding: object) -> StoredChunk:
        doc_metadata = DocumentMetadata.from_record(metadata)
        vector: tuple[float, ...] = ()
        if embedding is not None:
            vector = tuple(float(value) for value in embedding)
        return StoredChunk(
            document_id=doc_metadata.document_id,
            chunk_index=int(metadata.get("chunk_index", 0)),
            content=document or "",
            metadata=doc_metadata,
            embedding=vector,
        )

    @staticmethod
    def _first(value: object) -> list:
        if isinstance(value, list):
            return list(value[0]) if value and value[0] is not None else []
        return []


def _chunk_id(document_id: str, chunk_index: int) -> str:
    return f"{document_id}-{chunk_index}"
