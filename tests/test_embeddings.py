from __future__ import annotations

import math
from typing import List

import pytest
from langchain_core.embeddings import Embeddings

from docrag.embeddings.service import EmbeddingConfig, HashEmbeddingClient, LangChainEmbeddingClient
from docrag.errors import EmbeddingServiceError


class _ConstantEmbeddings(Embeddings):
    def __init__(self, vector: List[float]) -> None:
        self.vector = vector
        self.calls: list[str] = []

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_query(text) for text in texts]

    def embed_query(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.vector)


class _BrokenEmbeddings(Embeddings):
    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        raise ConnectionError("upstream unavailable")

    def embed_query(self, text: str) -> List[float]:
        raise ConnectionError("upstream unavailable")


def test_hash_embedding_dim_matches_config() -> None:
    client = HashEmbeddingClient(EmbeddingConfig(dim=64))
    vec = client.embed("hello world")
    assert isinstance(vec, tuple)
    assert len(vec) == 64
    assert math.isclose(sum(value * value for value in vec), 1.0, rel_tol=1e-9)


def test_hash_embedding_is_deterministic() -> None:
    client = HashEmbeddingClient(EmbeddingConfig(dim=32))
    assert client.embed("alpha") == client.embed("alpha")
    assert client.embed("alpha") != client.embed("beta")


def test_input_over_limit_is_reported_not_truncated() -> None:
    client = HashEmbeddingClient(EmbeddingConfig(dim=8, max_input_chars=10))
    with pytest.raises(EmbeddingServiceError):
        client.embed("x" * 11)


def test_langchain_client_normalises_model_vectors() -> None:
    model = _ConstantEmbeddings([3.0, 4.0])
    client = LangChainEmbeddingClient(EmbeddingConfig(dim=2), model=model)
    assert client.embed("text") == pytest.approx((0.6, 0.8))
    assert model.calls == ["text"]


def test_langchain_client_rejects_wrong_dimension() -> None:
    client = LangChainEmbeddingClient(EmbeddingConfig(dim=16), model=_ConstantEmbeddings([1.0] * 8))
    with pytest.raises(EmbeddingServiceError, match="dimension"):
        client.embed("text")


def test_langchain_client_wraps_upstream_failures() -> None:
    client = LangChainEmbeddingClient(EmbeddingConfig(dim=4), model=_BrokenEmbeddings())
    with pytest.raises(EmbeddingServiceError, match="upstream unavailable"):
        client.embed("text")


def test_langchain_client_without_model_uses_hash_vectors() -> None:
    config = EmbeddingConfig(dim=12, use_model=False)
    assert LangChainEmbeddingClient(config).embed("same") == HashEmbeddingClient(config).embed("same")
