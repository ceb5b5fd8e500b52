"""Render PDF pages to PNG bitmaps for OCR.

Pages are rendered one at a time with pdf2image (poppler ``pdftoppm``) so
only one page bitmap is decoded in memory at once.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Callable

from pdf2image import convert_from_bytes

from .schema import PageImage
from .utils import RasterizationFailure, check_binary_exists

logger = logging.getLogger(__name__)

PDF_POINTS_PER_INCH = 72
DEFAULT_SCALE = 2.0

ProgressCallback = Callable[[int, int], None]


def scale_to_dpi(scale: float) -> int:
    """Convert a zoom factor (1.0 = 72 dpi) to a render DPI."""
    return max(1, round(PDF_POINTS_PER_INCH * scale))


def _render_page(pdf_bytes: bytes, page_number: int, dpi: int) -> PageImage:
    images = convert_from_bytes(
        pdf_bytes, dpi=dpi, first_page=page_number, last_page=page_number,
    )
    if not images:
        raise RasterizationFailure(f"Renderer returned no image for page {page_number}.")
    image = images[0]
    try:
        buf = BytesIO()
        image.save(buf, format="PNG")
        return PageImage(
            page_number=page_number,
            data=buf.getvalue(),
            width=image.width,
            height=image.height,
        )
    finally:
        image.close()
        del images


def rasterize_pdf(
    pdf_bytes: bytes,
    page_count: int,
    scale: float = DEFAULT_SCALE,
    max_pages: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[PageImage]:
    """Render each page sequentially; raise ``RasterizationFailure`` on any error."""

    if not check_binary_exists("pdftoppm"):
        raise RasterizationFailure("Missing required system binary: pdftoppm")

    total = min(page_count, max_pages) if max_pages else page_count
    dpi = scale_to_dpi(scale)
    pages: list[PageImage] = []
    for page_number in range(1, total + 1):
        if on_progress:
            on_progress(page_number, total)
        try:
            pages.append(_render_page(pdf_bytes, page_number, dpi))
        except RasterizationFailure:
            raise
        except Exception as exc:
            raise RasterizationFailure(
                f"Failed to render page {page_number}: {exc}"
            ) from exc
        logger.debug("Rendered page %d/%d at %d dpi", page_number, total, dpi)

    logger.info("Rasterized %d page(s) at scale %.2f", len(pages), scale)
    return pages
