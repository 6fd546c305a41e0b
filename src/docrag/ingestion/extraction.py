"""Plain-text extraction from uploaded file buffers."""

from __future__ import annotations

import io
import tempfile
from enum import Enum
from pathlib import Path
from typing import List
from urllib.parse import unquote

from langchain_community.document_loaders import Docx2txtLoader
from pypdf import PdfReader

from docrag.errors import ExtractionError, UnsupportedFormatError
from docrag.metrics.observability import get_logger


class DocumentFormat(str, Enum):
    """Formats the extractor understands, selected by file extension."""

    PDF = "pdf"
    DOCX = "docx"
    PLAINTEXT = "plaintext"

    @classmethod
    def from_filename(cls, file_name: str) -> "DocumentFormat":
        suffix = Path(file_name).suffix.lower()
        try:
            return _EXTENSIONS[suffix]
        except KeyError:
            raise UnsupportedFormatError(
                f"Unsupported file type: {suffix or '<none>'}. Please upload a PDF, DOCX, or TXT file."
            ) from None


_EXTENSIONS = {
    ".pdf": DocumentFormat.PDF,
    ".docx": DocumentFormat.DOCX,
    ".txt": DocumentFormat.PLAINTEXT,
}


def safe_unquote(value: str) -> str:
    """Percent-decode a PDF text run without ever raising.

    Malformed escapes (e.g. a truncated UTF-8 sequence) make the strict
    decode fail; the second attempt escapes every ``%`` first, and the raw
    run is returned when both fail.
    """

    try:
        return unquote(value, errors="strict")
    except (UnicodeDecodeError, ValueError):
        try:
            return unquote(value.replace("%", "%25"), errors="strict")
        except (UnicodeDecodeError, ValueError):
            return value


class TextExtractor:
    """Converts a raw buffer in a declared format into plain text."""

    _logger = get_logger("ingestion.extraction")

    def extract(self, buffer: bytes, declared_format: DocumentFormat | str) -> str:
        try:
            fmt = DocumentFormat(declared_format)
        except ValueError:
            raise UnsupportedFormatError(f"Unsupported document format: {declared_format}") from None

        if fmt is DocumentFormat.PLAINTEXT:
            text = self._extract_plaintext(buffer)
        elif fmt is DocumentFormat.DOCX:
            text = self._extract_docx(buffer)
        else:
            text = self._extract_pdf(buffer)
        self._logger.debug("extraction.complete", format=fmt.value, text_length=len(text))
        return text

    @staticmethod
    def _extract_plaintext(buffer: bytes) -> str:
        try:
            return buffer.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Text file is not valid UTF-8: {exc}") from exc

    @staticmethod
    def _extract_docx(buffer: bytes) -> str:
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "upload.docx"
            path.write_bytes(buffer)
            try:
                documents = Docx2txtLoader(str(path)).load()
            except Exception as exc:
                raise ExtractionError(f"Error extracting DOCX text: {exc}") from exc
        return "\n".join(document.page_content for document in documents)

    @staticmethod
    def _extract_pdf(buffer: bytes) -> str:
        runs: List[str] = []

        def collect_run(text, cm, tm, font_dict, font_size) -> None:  # noqa: ARG001 - pypdf visitor signature
            if text:
                runs.append(safe_unquote(text))

        try:
            reader = PdfReader(io.BytesIO(buffer))
            for page in reader.pages:
                page.extract_text(visitor_text=collect_run)
        except Exception as exc:
            raise ExtractionError(f"Error parsing PDF: {exc}") from exc
        return " ".join(runs).strip()


def extract_text(buffer: bytes, declared_format: DocumentFormat | str) -> str:
    """Convenience helper for tests and ad-hoc extraction."""

    return TextExtractor().extract(buffer, declared_format)
