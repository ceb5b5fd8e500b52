"""Image cleanup applied to rendered pages before OCR.

Pipeline (order matters on aged scans):
grayscale -> normalize -> sharpen -> denoise -> binarize
"""

from __future__ import annotations

import logging
import time
from io import BytesIO

import numpy as np
from PIL import Image, ImageFilter, ImageOps

from .schema import PageImage

logger = logging.getLogger(__name__)

PREPROCESS_STEPS = ("grayscale", "normalize", "sharpen", "denoise", "binarize")

SHARPEN_RADIUS = 1.5
SHARPEN_PERCENT = 150
SHARPEN_THRESHOLD = 3
MEDIAN_SIZE = 3
DEFAULT_THRESHOLD = 128


def otsu_threshold(gray: Image.Image) -> int:
    """Compute an Otsu threshold for a grayscale image."""

    hist = np.asarray(gray.histogram()[:256], dtype=np.float64)
    total = hist.sum()
    if total == 0:
        return DEFAULT_THRESHOLD
    levels = np.arange(256, dtype=np.float64)
    weight_bg = np.cumsum(hist)
    weight_fg = total - weight_bg
    sum_bg = np.cumsum(hist * levels)
    sum_total = sum_bg[-1]

    valid = (weight_bg > 0) & (weight_fg > 0)
    if not valid.any():
        return DEFAULT_THRESHOLD
    mean_bg = np.divide(sum_bg, weight_bg, out=np.zeros(256), where=weight_bg > 0)
    mean_fg = np.divide(
        sum_total - sum_bg, weight_fg, out=np.zeros(256), where=weight_fg > 0
    )
    variance = np.where(valid, weight_bg * weight_fg * (mean_bg - mean_fg) ** 2, 0.0)
    return int(np.argmax(variance))


def preprocess_pil(image: Image.Image) -> Image.Image:
    """Run the fixed cleanup pipeline on a PIL image."""

    gray = image.convert("L")
    gray = ImageOps.autocontrast(gray)
    gray = gray.filter(
        ImageFilter.UnsharpMask(
            radius=SHARPEN_RADIUS, percent=SHARPEN_PERCENT, threshold=SHARPEN_THRESHOLD
        )
    )
    gray = gray.filter(ImageFilter.MedianFilter(size=MEDIAN_SIZE))
    threshold = otsu_threshold(gray)
    return gray.point(lambda x: 255 if x > threshold else 0)


def preprocess_image(png_bytes: bytes) -> bytes:
    """Preprocess one PNG page image and return PNG bytes."""

    with Image.open(BytesIO(png_bytes)) as image:
        processed = preprocess_pil(image)
    buf = BytesIO()
    processed.save(buf, format="PNG")
    return buf.getvalue()


def preprocess_pages(pages: list[PageImage]) -> list[PageImage]:
    """Preprocess every rendered page, keeping page numbers and sizes."""

    start = time.perf_counter()
    size_before = sum(len(p.data) for p in pages)
    processed = [
        p.model_copy(update={"data": preprocess_image(p.data)}) for p in pages
    ]
    size_after = sum(len(p.data) for p in processed)
    logger.info(
        "Image preprocessing completed: pages=%d size_before=%.1fMB size_after=%.1fMB duration=%dms",
        len(pages),
        size_before / 1024 / 1024,
        size_after / 1024 / 1024,
        int((time.perf_counter() - start) * 1000),
    )
    return processed
