"""Local PDF text extraction.

Uses PyMuPDF (fitz) so PDFs can be indexed without a remote service.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

import fitz  # PyMuPDF

from vaultindexer.errors import RecoverableExtractionError
from vaultindexer.extraction.base import BytesFetcher

LOGGER = logging.getLogger(__name__)


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Strip lines and drop empty ones."""
    return "\n".join(line.strip() for line in lines if line.strip())


def iter_text_parts(data: bytes, path: str) -> Iterator[str]:
    """Yield normalized text from PDF bytes page by page."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise RecoverableExtractionError(f"Unable to open PDF: {exc}", path=path) from exc

    try:
        for index in range(len(doc)):
            try:
                text = doc[index].get_text() or ""
            except Exception as exc:
                LOGGER.warning("Failed to read page %s in %s: %s", index, path, exc)
                continue
            normalized = normalize_whitespace(text.splitlines())
            if normalized:
                yield normalized
    finally:
        doc.close()


class PdfTextExtractor:
    """Extracts the embedded text layer of PDF attachments."""

    def __init__(self, *, max_size_mb: float = 100.0) -> None:
        self.max_size_mb = max_size_mb

    def is_available(self) -> bool:
        return True

    def extract(self, size_mb: float, fetch_bytes: BytesFetcher, path: str) -> str:
        if size_mb > self.max_size_mb:
            raise RecoverableExtractionError(
                f"PDF is {size_mb:.1f} MB, above the {self.max_size_mb:.0f} MB limit", path=path
            )
        pages = list(iter_text_parts(fetch_bytes(), path))
        if not pages:
            LOGGER.warning("No text extracted from %s", path)
        return "\n\n".join(pages)
