"""Exceptions and small helpers shared by the extraction pipeline."""

from __future__ import annotations

import os
import shutil
from pathlib import Path


class ExtractionError(Exception):
    """Base exception for extraction errors."""


class PdfValidationError(ExtractionError):
    """Raised when a PDF file is missing or unreadable."""


class ExtractionFailure(ExtractionError):
    """Raised when no text could be obtained by any extraction method."""


class RasterizationFailure(ExtractionError):
    """Raised when PDF pages cannot be rendered to images."""


class CloudOcrError(ExtractionError):
    """Base class for cloud OCR faults.

    ``pages_billed`` counts the pages the remote engine had already
    processed in the same call when the fault was raised.
    """

    pages_billed: int = 0


class CloudOcrUnavailable(CloudOcrError):
    """Raised when the cloud OCR client is disabled or not configured."""


class CloudOcrQuotaExceeded(CloudOcrError):
    """Raised when the remote engine reports its quota as exhausted."""


class CloudOcrPermissionDenied(CloudOcrError):
    """Raised when the remote engine rejects the credentials."""


class CloudOcrInvalidImage(CloudOcrError):
    """Raised when the remote engine rejects the submitted image or PDF."""


class LocalOcrUnavailable(ExtractionError):
    """Raised when the tesseract binary is missing."""


class LocalOcrPageFailure(ExtractionError):
    """Raised when local OCR fails on a single page."""

    def __init__(self, page_number: int, cause: Exception) -> None:
        super().__init__(f"Local OCR failed on page {page_number}: {cause}")
        self.page_number = page_number
        self.cause = cause


def check_binary_exists(binary_name: str) -> bool:
    """Return True if a binary is available on PATH."""

    return shutil.which(binary_name) is not None


def validate_pdf_path(path: str | Path) -> Path:
    """Validate that the PDF exists and is readable."""

    pdf_path = Path(path).expanduser().resolve()
    if not pdf_path.exists():
        raise PdfValidationError(f"PDF not found: {pdf_path}")
    if not pdf_path.is_file():
        raise PdfValidationError(f"PDF path is not a file: {pdf_path}")
    if pdf_path.suffix.lower() != ".pdf":
        raise PdfValidationError("Input file must be a PDF.")
    if not os.access(pdf_path, os.R_OK):
        raise PdfValidationError(f"PDF is not readable: {pdf_path}")
    return pdf_path


def read_pdf_bytes(source: bytes | str | Path) -> bytes:
    """Return raw PDF bytes from a path or pass bytes through."""

    if isinstance(source, (bytes, bytearray)):
        if not source:
            raise PdfValidationError("PDF content is empty.")
        return bytes(source)
    return validate_pdf_path(source).read_bytes()


def mean(values: list[float]) -> float:
    """Arithmetic mean, 0.0 for an empty list."""

    if not values:
        return 0.0
    return sum(values) / len(values)
