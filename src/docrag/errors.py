"""Typed failures raised by the docrag pipeline.

Every exception carries a human-readable message plus, when known, the
``document_id`` and pipeline ``stage`` it occurred in. ``code`` and
``status_code`` are class-level so the HTTP layer can map any subclass
without a lookup table.

    DocRAGError
    +-- IngestionError
    |   +-- UnsupportedFormatError
    |   +-- ExtractionError
    |   +-- EmptyContentError
    +-- StorageError
    |   +-- StorageUploadError
    |   +-- StorageWriteError
    |   +-- StorageReadError
    |       +-- ObjectNotFoundError
    +-- EmbeddingServiceError
    +-- GenerationServiceError
    +-- InvalidQueryError
    +-- DocumentNotFoundError
"""

from __future__ import annotations


class DocRAGError(RuntimeError):
    """Base class for every failure surfaced by the core."""

    code = "internal_error"
    status_code = 500

    def __init__(self, message: str, *, document_id: str | None = None, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.document_id = document_id
        self.stage = stage


class IngestionError(DocRAGError):
    """Raised when a document cannot be turned into text chunks."""

    code = "ingestion_failed"


class UnsupportedFormatError(IngestionError):
    code = "unsupported_format"
    status_code = 400


class ExtractionError(IngestionError):
    code = "extraction_failed"
    status_code = 422


class EmptyContentError(IngestionError):
    code = "empty_content"
    status_code = 400


class StorageError(DocRAGError):
    code = "storage_error"


class StorageUploadError(StorageError):
    """Raised when the raw file cannot be written to the object store."""

    code = "storage_upload_failed"


class StorageWriteError(StorageError):
    """Raised when a chunk row cannot be inserted."""

    code = "storage_write_failed"


class StorageReadError(StorageError):
    code = "storage_read_failed"


class ObjectNotFoundError(StorageReadError):
    """Raised when the object store holds nothing under the requested key."""

    code = "object_not_found"
    status_code = 404


class EmbeddingServiceError(DocRAGError):
    code = "embedding_failed"


class GenerationServiceError(DocRAGError):
    code = "generation_failed"


class InvalidQueryError(DocRAGError):
    code = "invalid_query"
    status_code = 400


class DocumentNotFoundError(DocRAGError):
    code = "not_found"
    status_code = 404


__all__ = [
    "DocRAGError",
    "DocumentNotFoundError",
    "EmbeddingServiceError",
    "EmptyContentError",
    "ExtractionError",
    "GenerationServiceError",
    "IngestionError",
    "InvalidQueryError",
    "ObjectNotFoundError",
    "StorageError",
    "StorageReadError",
    "StorageUploadError",
    "StorageWriteError",
    "UnsupportedFormatError",
]
