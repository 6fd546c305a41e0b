"""Shared domain models used across the docrag pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DocumentMetadata:
    """Descriptive metadata captured once for an uploaded document."""

    document_id: str
    file_name: str
    file_type: str
    file_size: int
    storage_key: str
    upload_date: datetime = field(default_factory=utcnow)
    file_url: str | None = None
    total_chunks: int = 0

    def to_record(self, chunk_index: int) -> dict[str, Any]:
        """Flatten into the per-chunk metadata row persisted next to each embedding."""

        record: dict[str, Any] = {
            "document_id": self.document_id,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "upload_date": self.upload_date.isoformat(),
            "chunk_index": chunk_index,
            "total_chunks": self.total_chunks,
            "file_path": self.storage_key,
        }
        if self.file_url:
            record["file_url"] = self.file_url
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "DocumentMetadata":
        upload_date = record.get("upload_date")
        try:
            parsed = datetime.fromisoformat(str(upload_date)) if upload_date else utcnow()
        except ValueError:
            parsed = utcnow()
        file_url = record.get("file_url")
        return cls(
            document_id=str(record.get("document_id", "")),
            file_name=str(record.get("file_name") or "Unknown"),
            file_type=str(record.get("file_type") or "unknown"),
            file_size=int(record.get("file_size") or 0),
            storage_key=str(record.get("file_path") or ""),
            upload_date=parsed,
            file_url=str(file_url) if file_url else None,
            total_chunks=int(record.get("total_chunks") or 0),
        )


@dataclass(frozen=True)
class StoredChunk:
    """One retrievable unit of text belonging to exactly one document."""

    document_id: str
    chunk_index: int
    content: str
    metadata: DocumentMetadata
    embedding: tuple[float, ...] = ()


@dataclass(frozen=True)
class RetrievedChunk:
    """Chunk returned from the knowledge store during retrieval."""

    chunk: StoredChunk
    score: float


@dataclass(frozen=True)
class IngestionResult:
    document_id: str
    file_name: str
    chunk_count: int
    text_length: int
    file_url: str | None = None


@dataclass(frozen=True)
class DocumentText:
    """A document's metadata plus its text rebuilt from stored chunks."""

    metadata: DocumentMetadata
    full_text: str
    chunk_count: int


@dataclass(frozen=True)
class StoredFile:
    metadata: DocumentMetadata
    data: bytes


@dataclass(frozen=True)
class DeletionResult:
    document_id: str
    chunks_deleted: int
    file_deleted: bool


@dataclass(frozen=True)
class Answer:
    """Generated answer together with the ranked chunks it was grounded on."""

    text: str
    sources: Sequence[RetrievedChunk]
    query_id: str
    latency_ms: float
    retrieval_ms: float | None = None
    generation_ms: float | None = None
