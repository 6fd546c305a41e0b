"""Shared fixtures: ephemeral Chroma stores, local object storage and document builders."""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import Callable, Sequence
from uuid import uuid4

import chromadb
import pytest

from docrag.embeddings.service import EmbeddingConfig, HashEmbeddingClient
from docrag.embeddings.store import ChromaKnowledgeStore
from docrag.storage.objects import LocalObjectStore

TEST_DIM = 16


@pytest.fixture
def embedder() -> HashEmbeddingClient:
    return HashEmbeddingClient(EmbeddingConfig(dim=TEST_DIM))


@pytest.fixture
def chroma_store() -> ChromaKnowledgeStore:
    # EphemeralClient instances share state in-process; a fresh collection keeps tests isolated.
    return ChromaKnowledgeStore(
        collection_name=f"test-{uuid4().hex}",
        client=chromadb.EphemeralClient(),
        dimension=TEST_DIM,
    )


@pytest.fixture
def object_store(tmp_path: Path) -> LocalObjectStore:
    return LocalObjectStore(tmp_path / "uploads")


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(lines: Sequence[str]) -> bytes:
    """Single-page PDF with one Helvetica text run per line."""

    ops = [
        f"BT /F1 12 Tf 72 {720 - 20 * index} Td ({_pdf_escape(line)}) Tj ET"
        for index, line in enumerate(lines)
    ]
    stream = "\n".join(ops).encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R "
        b"/Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length " + str(len(stream)).encode() + b" >>\nstream\n" + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]
    out = io.BytesIO()
    out.write(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(out.tell())
        out.write(f"{number} 0 obj\n".encode() + body + b"\nendobj\n")
    xref_offset = out.tell()
    out.write(f"xref\n0 {len(objects) + 1}\n".encode())
    out.write(b"0000000000 65535 f \n")
    for offset in offsets:
        out.write(f"{offset:010d} 00000 n \n".encode())
    out.write(f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode())
    return out.getvalue()


def build_docx(paragraphs: Sequence[str]) -> bytes:
    """Minimal .docx container holding only ``word/document.xml``."""

    body = "".join(f"<w:p><w:r><w:t>{paragraph}</w:t></w:r></w:p>" for paragraph in paragraphs)
    document = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w") as archive:
        archive.writestr("word/document.xml", document)
    return out.getvalue()


@pytest.fixture
def make_pdf() -> Callable[[Sequence[str]], bytes]:
    return build_pdf


@pytest.fixture
def make_docx() -> Callable[[Sequence[str]], bytes]:
    return build_docx
