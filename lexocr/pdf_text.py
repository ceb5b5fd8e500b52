"""Native PDF text extraction using PyMuPDF (fitz).

Free and fast; only useful when the PDF carries a real text layer.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import fitz  # PyMuPDF

from .schema import PageMethod, PageResult
from .utils import PdfValidationError, read_pdf_bytes

NATIVE_DENSITY_THRESHOLD = 500
NATIVE_CONFIDENCE = 95.0
PAGE_SEPARATOR = "\f"

_PAGE_SPLIT_RE = re.compile(r"\f|\n{3,}")


@dataclass
class NativeText:
    """Embedded text layer of a PDF."""

    text: str
    page_count: int
    page_texts: list[str] = field(default_factory=list)

    @property
    def char_density(self) -> float:
        return char_density(self.text, self.page_count)


def char_density(text: str, page_count: int) -> float:
    """Average number of characters per page."""
    return len(text) / max(page_count, 1)


def open_pdf(source: bytes | str | Path) -> fitz.Document:
    """Open a PDF from bytes or a validated path."""
    data = read_pdf_bytes(source)
    try:
        return fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise PdfValidationError(f"Unreadable PDF: {exc}") from exc


def extract_native_text(source: bytes | str | Path) -> NativeText:
    """Extract embedded text from a PDF, pages separated by form feeds."""
    doc = open_pdf(source)
    page_texts: list[str] = []
    try:
        page_count = doc.page_count
        for page in doc:
            page_texts.append(page.get_text().strip())
    finally:
        doc.close()
    text = PAGE_SEPARATOR.join(page_texts).strip()
    return NativeText(text=text, page_count=page_count, page_texts=page_texts)


def is_native_sufficient(native: NativeText) -> bool:
    """Return True if the text layer is dense enough to skip OCR."""
    return native.char_density > NATIVE_DENSITY_THRESHOLD


def split_native_pages(text: str, confidence: float = NATIVE_CONFIDENCE) -> list[PageResult]:
    """Rebuild page results from native text split on form feeds or blank runs."""
    return [
        PageResult(
            page_number=index,
            text=chunk.strip(),
            confidence=confidence,
            method=PageMethod.NATIVE,
        )
        for index, chunk in enumerate(_PAGE_SPLIT_RE.split(text), start=1)
    ]
