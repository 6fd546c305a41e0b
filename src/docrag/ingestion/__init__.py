"""Document ingestion pipeline."""

from .chunking import ChunkingConfig, TextChunker, split_text
from .extraction import DocumentFormat, TextExtractor, extract_text, safe_unquote
from .service import IngestionConfig, IngestionPipeline, IngestionState, ingest_file, storage_key_for

__all__ = [
    "ChunkingConfig",
    "DocumentFormat",
    "IngestionConfig",
    "IngestionPipeline",
    "IngestionState",
    "TextChunker",
    "TextExtractor",
    "extract_text",
    "ingest_file",
    "safe_unquote",
    "split_text",
    "storage_key_for",
]
