"""Document ingestion pipeline for docrag."""

from __future__ import annotations

import mimetypes
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable
from uuid import uuid4

from docrag.embeddings.service import EmbeddingClient
from docrag.embeddings.store import KnowledgeStore
from docrag.errors import (
    DocRAGError,
    EmbeddingServiceError,
    EmptyContentError,
    ExtractionError,
    StorageUploadError,
    StorageWriteError,
)
from docrag.ingestion.chunking import ChunkingConfig, TextChunker
from docrag.ingestion.extraction import DocumentFormat, TextExtractor
from docrag.metrics.observability import PipelineMetrics, get_logger
from docrag.models import DocumentMetadata, IngestionResult, utcnow
from docrag.services.boundary import BoundaryTimeouts, call_boundary
from docrag.storage.objects import ObjectStore


class IngestionState(str, Enum):
    RECEIVED = "received"
    EXTRACTED = "extracted"
    CHUNKED = "chunked"
    EMBEDDING = "embedding"
    STORED = "stored"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class IngestionConfig:
    """Configuration for document ingestion."""

    chunk_size: int = 800
    chunk_overlap: int = 100


def storage_key_for(document_id: str, file_name: str) -> str:
    """Object-store key: the document id plus the original extension."""

    extension = Path(file_name).suffix.lstrip(".") or "bin"
    return f"{document_id}.{extension}"


def _declared_type(file_name: str, content_type: str | None) -> str:
    if content_type and content_type != "application/octet-stream":
        return content_type
    guessed, _ = mimetypes.guess_type(file_name)
    return guessed or Path(file_name).suffix.lstrip(".").lower() or "unknown"


class IngestionPipeline:
    """Turns one uploaded file into stored, searchable chunks.

    Chunks are embedded and inserted one at a time in index order with no
    enclosing transaction. When chunk ``i`` fails, chunks ``0..i-1`` stay
    stored and the failure is raised; callers delete the document before
    retrying.
    """

    _logger = get_logger("ingestion")

    def __init__(
        self,
        *,
        object_store: ObjectStore,
        embedder: EmbeddingClient,
        store: KnowledgeStore,
        extractor: TextExtractor | None = None,
        config: IngestionConfig | None = None,
        timeouts: BoundaryTimeouts | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._object_store = object_store
        self._embedder = embedder
        self._store = store
        self._extractor = extractor or TextExtractor()
        self._config = config or IngestionConfig()
        self._chunker = TextChunker(
            ChunkingConfig(chunk_size=self._config.chunk_size, chunk_overlap=self._config.chunk_overlap)
        )
        self._timeouts = timeouts or BoundaryTimeouts()
        self._id_factory = id_factory or (lambda: str(uuid4()))

    def ingest(self, file_name: str, data: bytes, content_type: str | None = None) -> IngestionResult:
        document_id = self._id_factory()
        start = time.perf_counter()
        state = IngestionState.RECEIVED
        log = self._logger.bind(document_id=document_id, file_name=file_name)
        log.info("ingestion.state", state=state.value, file_size=len(data))
        try:
            storage_key = storage_key_for(document_id, file_name)
            declared_type = _declared_type(file_name, content_type)
            call_boundary(
                self._object_store.put,
                storage_key,
                data,
                declared_type,
                timeout=self._timeouts.object_store,
                error_cls=StorageUploadError,
                operation="File upload",
            )
            file_url = call_boundary(
                self._object_store.url_for,
                storage_key,
                timeout=self._timeouts.object_store,
                error_cls=StorageUploadError,
                operation="File URL lookup",
            )

            fmt = DocumentFormat.from_filename(file_name)
            text = self._extract(data, fmt)
            if not text.strip():
                raise EmptyContentError("Could not extract text from file")
            state = IngestionState.EXTRACTED
            log.info("ingestion.state", state=state.value, text_length=len(text))

            chunks = self._chunker.split(text)
            if not chunks:
                raise EmptyContentError("Extracted text produced no chunks")
            state = IngestionState.CHUNKED
            log.info("ingestion.state", state=state.value, chunk_count=len(chunks))

            metadata = DocumentMetadata(
                document_id=document_id,
                file_name=file_name,
                file_type=declared_type,
                file_size=len(data),
                storage_key=storage_key,
                upload_date=utcnow(),
                file_url=file_url,
                total_chunks=len(chunks),
            )
            state = IngestionState.EMBEDDING
            for index, chunk in enumerate(chunks):
                vector = call_boundary(
                    self._embedder.embed,
                    chunk,
                    timeout=self._timeouts.embedding,
                    error_cls=EmbeddingServiceError,
                    operation=f"Embedding chunk {index}",
                )
                call_boundary(
                    self._store.insert_chunk,
                    document_id,
                    index,
                    chunk,
                    vector,
                    metadata,
                    timeout=None,
                    error_cls=StorageWriteError,
                    operation=f"Storing chunk {index}",
                )
                log.debug("ingestion.chunk_stored", chunk_index=index)
            state = IngestionState.STORED
            log.info("ingestion.state", state=state.value)
        except DocRAGError as exc:
            exc.document_id = exc.document_id or document_id
            exc.stage = exc.stage or state.value
            PipelineMetrics.observe_ingestion_failure(exc.code, exc.stage)
            log.warning(
                "ingestion.state",
                state=IngestionState.FAILED.value,
                failed_in=exc.stage,
                error=exc.code,
                detail=exc.message,
            )
            raise

        duration = time.perf_counter() - start
        PipelineMetrics.observe_ingestion(duration, len(chunks))
        log.info(
            "ingestion.complete",
            state=IngestionState.COMPLETE.value,
            chunk_count=len(chunks),
            duration_seconds=duration,
        )
        return IngestionResult(
            document_id=document_id,
            file_name=file_name,
            chunk_count=len(chunks),
            text_length=len(text),
            file_url=file_url,
        )

    def _extract(self, data: bytes, fmt: DocumentFormat) -> str:
        try:
            return self._extractor.extract(data, fmt)
        except DocRAGError:
            raise
        except Exception as exc:  # pragma: no cover - extractor specific errors
            raise ExtractionError(f"Failed to extract text: {exc}") from exc


def ingest_file(pipeline: IngestionPipeline, path: Path) -> IngestionResult:
    """Convenience helper for the CLI and ad-hoc ingestion."""

    return pipeline.ingest(path.name, path.read_bytes())
