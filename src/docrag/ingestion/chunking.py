"""Overlapping, size-bounded text chunking."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from langchain_text_splitters import RecursiveCharacterTextSplitter

DEFAULT_CHUNK_SIZE = 800
DEFAULT_CHUNK_OVERLAP = 100


@dataclass(frozen=True)
class ChunkingConfig:
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP


class TextChunker:
    """Splits text on paragraph, line, then word boundaries before cutting characters.

    Adjacent chunks share up to ``chunk_overlap`` characters of the source
    text. Output depends only on the input and the configuration.
    """

    def __init__(self, config: ChunkingConfig | None = None) -> None:
        self._config = config or ChunkingConfig()
        if self._config.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self._config.chunk_size}")
        if not 0 <= self._config.chunk_overlap < self._config.chunk_size:
            raise ValueError(
                f"Overlap ({self._config.chunk_overlap}) must be non-negative and less than "
                f"chunk size ({self._config.chunk_size})"
            )
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=self._config.chunk_size,
            chunk_overlap=self._config.chunk_overlap,
            length_function=len,
        )

    @property
    def config(self) -> ChunkingConfig:
        return self._config

    def split(self, text: str) -> List[str]:
        if not text or not text.strip():
            return []
        return [chunk for chunk in self._splitter.split_text(text) if chunk]


def split_text(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_CHUNK_OVERLAP) -> List[str]:
    return TextChunker(ChunkingConfig(chunk_size=chunk_size, chunk_overlap=overlap)).split(text)
