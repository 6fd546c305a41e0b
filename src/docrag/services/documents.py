"""Read and delete operations over ingested documents."""

from __future__ import annotations

from typing import Sequence

from docrag.embeddings.store import KnowledgeStore
from docrag.errors import DocumentNotFoundError, ObjectNotFoundError, StorageReadError, StorageWriteError
from docrag.metrics.observability import get_logger
from docrag.models import DeletionResult, DocumentMetadata, DocumentText, StoredFile
from docrag.services.boundary import BoundaryTimeouts, call_boundary
from docrag.storage.objects import ObjectStore

TEXT_JOINER = "\n\n"


class DocumentCatalog:
    """Lists, reconstructs, serves and deletes documents.

    A document exists as far as the catalog is concerned while at least one
    of its chunks is stored.
    """

    def __init__(
        self,
        *,
        store: KnowledgeStore,
        object_store: ObjectStore,
        timeouts: BoundaryTimeouts | None = None,
    ) -> None:
        self._store = store
        self._object_store = object_store
        self._timeouts = timeouts or BoundaryTimeouts()
        self._logger = get_logger("documents")

    def list_documents(self) -> Sequence[DocumentMetadata]:
        return self._store.list_documents()

    def get_document(self, document_id: str) -> DocumentText:
        """Rebuild the document text by joining its chunks in index order.

        Overlapping characters between neighbouring chunks are kept as-is.
        """

        chunks = self._store.get_by_document_id(document_id)
        if not chunks:
            raise DocumentNotFoundError(f"Document not found: {document_id}", document_id=document_id)
        return DocumentText(
            metadata=chunks[0].metadata,
            full_text=TEXT_JOINER.join(chunk.content for chunk in chunks),
            chunk_count=len(chunks),
        )

    def open_file(self, document_id: str) -> StoredFile:
        metadata = self._metadata_for(document_id)
        if metadata is None:
            raise DocumentNotFoundError(f"Document not found: {document_id}", document_id=document_id)
        try:
            data = call_boundary(
                self._object_store.get,
                metadata.storage_key,
                timeout=self._timeouts.object_store,
                error_cls=StorageReadError,
                operation="File download",
            )
        except ObjectNotFoundError as exc:
            raise DocumentNotFoundError(str(exc), document_id=document_id) from exc
        if not data:
            raise StorageReadError("File is empty", document_id=document_id)
        return StoredFile(metadata=metadata, data=data)

    def delete_document(self, document_id: str) -> DeletionResult:
        """Remove the stored file and every chunk. Safe to repeat."""

        metadata = self._metadata_for(document_id)
        file_deleted = False
        if metadata is not None and metadata.storage_key:
            file_deleted = call_boundary(
                self._object_store.delete,
                metadata.storage_key,
                timeout=self._timeouts.object_store,
                error_cls=StorageWriteError,
                operation="File deletion",
            )
        chunks_deleted = self._store.delete_by_document_id(document_id)
        self._logger.info(
            "document.deleted",
            document_id=document_id,
            chunks_deleted=chunks_deleted,
            file_deleted=file_deleted,
        )
        return DeletionResult(document_id=document_id, chunks_deleted=chunks_deleted, file_deleted=file_deleted)

    def _metadata_for(self, document_id: str) -> DocumentMetadata | None:
        chunks = self._store.get_by_document_id(document_id)
        return chunks[0].metadata if chunks else None
