"""Tesseract-based local OCR: free, unlimited, lower accuracy."""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Callable

import pytesseract
from PIL import Image

from .schema import PageImage, PageMethod, PageResult
from .utils import LocalOcrPageFailure, LocalOcrUnavailable, check_binary_exists, mean

logger = logging.getLogger(__name__)

OCR_OEM = 1
OCR_PSM = 3
OCR_LANG = "fra"

ProgressCallback = Callable[[int, int], None]


def is_available() -> bool:
    """Return True if the tesseract binary is on PATH."""
    return check_binary_exists("tesseract")


def _build_config(psm: int = OCR_PSM, tessdata_path: str | None = None) -> str:
    parts = [f"--oem {OCR_OEM}", f"--psm {psm}"]
    if tessdata_path:
        parts.append(f"--tessdata-dir \"{tessdata_path}\"")
    return " ".join(parts)


def _extract_tokens(ocr_data: dict) -> tuple[list[str], list[float]]:
    token_texts: list[str] = []
    confidences: list[float] = []
    for index, raw in enumerate(ocr_data.get("text", [])):
        text = (raw or "").strip()
        if not text:
            continue
        try:
            confidence = float(ocr_data["conf"][index])
        except (KeyError, IndexError, TypeError, ValueError):
            confidence = -1.0
        if confidence < 0:
            continue
        token_texts.append(text)
        confidences.append(confidence)
    return token_texts, confidences


def ocr_image(
    png_bytes: bytes,
    lang: str = OCR_LANG,
    tessdata_path: str | None = None,
) -> tuple[str, float]:
    """OCR one page image. Returns ``(text, confidence)``."""

    config = _build_config(tessdata_path=tessdata_path)
    with Image.open(BytesIO(png_bytes)) as image:
        text = pytesseract.image_to_string(image, lang=lang, config=config)
        ocr_data = pytesseract.image_to_data(
            image, lang=lang, config=config, output_type=pytesseract.Output.DICT,
        )
    _, confidences = _extract_tokens(ocr_data)
    text = text.strip()
    if not text:
        return "", 0.0
    return text, round(mean(confidences), 2)


def extract_with_ocr(
    images: list[PageImage],
    lang: str = OCR_LANG,
    tessdata_path: str | None = None,
    on_progress: ProgressCallback | None = None,
) -> list[PageResult]:
    """OCR pages one after another; a failing page becomes an empty page."""

    if not is_available():
        raise LocalOcrUnavailable("Missing required system binary: tesseract")

    results: list[PageResult] = []
    total = len(images)
    for index, image in enumerate(images, start=1):
        if on_progress:
            on_progress(index, total)
        try:
            text, confidence = ocr_image(image.data, lang=lang, tessdata_path=tessdata_path)
        except Exception as exc:
            logger.warning("%s", LocalOcrPageFailure(image.page_number, exc))
            text, confidence = "", 0.0
        results.append(
            PageResult(
                page_number=image.page_number,
                text=text,
                confidence=confidence,
                method=PageMethod.OCR,
            )
        )
    return results
