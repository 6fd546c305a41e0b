"""Embedding clients for docrag."""

from __future__ import annotations

import hashlib
import logging
import math
from dataclasses import dataclass
from typing import Protocol, Tuple

from langchain_core.embeddings import Embeddings as LangChainEmbeddings

from docrag.errors import EmbeddingServiceError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmbeddingConfig:
    """Configuration for embedding clients."""

    model: str = "BAAI/bge-small-en-v1.5"
    dim: int = 384
    use_model: bool = False
    device: str | None = None
    normalize: bool = True
    cache_folder: str | None = None
    max_input_chars: int | None = None


class EmbeddingClient(Protocol):
    """Text to fixed-dimension vector. Failures raise ``EmbeddingServiceError``."""

    def embed(self, text: str) -> Tuple[float, ...]:
        """Return the embedding vector for ``text``."""


def _l2_normalize(vector: Tuple[float, ...]) -> Tuple[float, ...]:
    norm = math.sqrt(sum(value * value for value in vector)) or 1.0
    return tuple(value / norm for value in vector)


class HashEmbeddingClient:
    """Deterministic lightweight embedding used for testing and offline runs."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self._config = config or EmbeddingConfig()

    def embed(self, text: str) -> Tuple[float, ...]:
        _check_input(text, self._config.max_input_chars)
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        repeat = (self._config.dim + len(digest) - 1) // len(digest)
        raw = (digest * repeat)[: self._config.dim]
        vector = tuple(byte / 255.0 for byte in raw)
        if self._config.normalize:
            vector = _l2_normalize(vector)
        return vector


class LangChainEmbeddingClient:
    """Embedding client delegating to a LangChain ``Embeddings`` model.

    When no model is supplied and ``use_model`` is set, a HuggingFace sentence
    embedding model is loaded; if that fails (or ``use_model`` is off) the
    client runs on hashed vectors of the same dimension.
    """

    def __init__(self, config: EmbeddingConfig | None = None, *, model: LangChainEmbeddings | None = None) -> None:
        self._config = config or EmbeddingConfig()
        self._delegate = HashEmbeddingClient(self._config)
        self._client: LangChainEmbeddings | None = model
        if self._client is not None:
            return
        if not self._config.use_model:
            LOGGER.info("LangChainEmbeddingClient running in hash-only mode.")
            return
        try:
            from langchain_community.embeddings import HuggingFaceEmbeddings

            model_kwargs = {"device": self._config.device} if self._config.device else {}
            self._client = HuggingFaceEmbeddings(
                model_name=self._config.model,
                model_kwargs=model_kwargs,
                encode_kwargs={"normalize_embeddings": self._config.normalize},
                cache_folder=self._config.cache_folder,
            )
            LOGGER.info("Loaded embedding model %s", self._config.model)
        except Exception as exc:  # pragma: no cover - defensive import/runtime guard
            LOGGER.warning("Falling back to hash embeddings: %s", exc)
            self._client = None

    def embed(self, text: str) -> Tuple[float, ...]:
        if self._client is None:
            return self._delegate.embed(text)
        _check_input(text, self._config.max_input_chars)
        try:
            raw = self._client.embed_query(text)
        except Exception as exc:
            raise EmbeddingServiceError(f"Embedding service call failed: {exc}") from exc
        vector = tuple(float(value) for value in raw)
        if len(vector) != self._config.dim:
            raise EmbeddingServiceError(
                f"Embedding dimension mismatch: configured={self._config.dim}, actual={len(vector)}"
            )
        return _l2_normalize(vector) if self._config.normalize else vector


def _check_input(text: str, max_input_chars: int | None) -> None:
    if max_input_chars is not None and len(text) > max_input_chars:
        raise EmbeddingServiceError(
            f"Input of {len(text)} characters exceeds the embedding limit of {max_input_chars}"
        )
