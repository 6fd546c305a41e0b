"""Pydantic models for the docrag API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from docrag.models import DocumentMetadata, RetrievedChunk


class DocumentSummary(BaseModel):
    id: str = Field(..., description="Identifier minted when the document was uploaded")
    file_name: str
    file_type: str = Field(..., description="Declared MIME type (or extension) of the upload")
    file_size: int = Field(..., ge=0, description="Size of the raw upload in bytes")
    upload_date: datetime
    total_chunks: int = Field(..., ge=0)
    file_url: Optional[str] = None
    file_path: str = Field(..., description="Object-store key of the raw upload")

    @classmethod
    def from_metadata(cls, metadata: DocumentMetadata) -> "DocumentSummary":
        return cls(
            id=metadata.document_id,
            file_name=metadata.file_name,
            file_type=metadata.file_type,
            file_size=metadata.file_size,
            upload_date=metadata.upload_date,
            total_chunks=metadata.total_chunks,
            file_url=metadata.file_url,
            file_path=metadata.storage_key,
        )


class DocumentListResponse(BaseModel):
    documents: List[DocumentSummary]


class DocumentTextResponse(DocumentSummary):
    full_text: str = Field(..., description="Chunk contents joined in chunk order")


class IngestionResponse(BaseModel):
    success: bool = True
    document_id: str
    file_name: str
    chunks: int = Field(..., ge=1, description="Number of chunks stored for the document")
    text_length: int = Field(..., ge=1)
    file_url: Optional[str] = None


class QueryRequest(BaseModel):
    query: str = Field(..., description="End-user question to answer")
    top_k: Optional[int] = Field(default=None, ge=1, description="Override the number of retrieved chunks")


class SourceModel(BaseModel):
    document_id: str
    file_name: str
    chunk_index: int
    content: str
    score: float

    @classmethod
    def from_retrieved(cls, retrieved: RetrievedChunk) -> "SourceModel":
        return cls(
            document_id=retrieved.chunk.document_id,
            file_name=retrieved.chunk.metadata.file_name,
            chunk_index=retrieved.chunk.chunk_index,
            content=retrieved.chunk.content,
            score=retrieved.score,
        )


class QueryResponse(BaseModel):
    query_id: str
    answer: str
    sources: List[SourceModel]
    latency_ms: float


class DeletionResponse(BaseModel):
    success: bool = True
    document_id: str
    chunks_deleted: int
    file_deleted: bool


class ErrorResponse(BaseModel):
    error: str
    detail: str
    correlation_id: str
