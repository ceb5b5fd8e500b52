"""Extraction orchestrator: native text layer, cloud OCR, local OCR.

The flow stops on the first success. ``ExtractionState`` names the
stages for logging only::

    NATIVE_ATTEMPT -> (dense text layer) DONE
                   -> OCR_REQUIRED -> (any OCR path succeeds) DONE
                                   -> PARTIAL_NATIVE_FALLBACK -> DONE
                                   -> FATAL (ExtractionFailure)

Intermediate faults, including rasterisation and preprocessing errors,
are logged and absorbed; only ``ExtractionFailure`` (and input
validation errors) reach the caller.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from .config import PipelineConfig, load_pipeline_config
from .ocr import extract_with_ocr
from .pdf_text import (
    NATIVE_CONFIDENCE,
    NativeText,
    extract_native_text,
    is_native_sufficient,
    split_native_pages,
)
from .preprocess import preprocess_pages
from .providers.cloud_ocr import CloudOcrClient
from .quota import QuotaTracker
from .rasterize import rasterize_pdf
from .schema import ExtractionMethod, ExtractionResult, PageImage, PageResult
from .utils import (
    CloudOcrError,
    ExtractionFailure,
    LocalOcrUnavailable,
    RasterizationFailure,
    mean,
    read_pdf_bytes,
)

logger = logging.getLogger(__name__)

HYBRID_CONFIDENCE_THRESHOLD = 60.0
HYBRID_LENGTH_RATIO = 1.5
PARTIAL_NATIVE_CONFIDENCE = 30.0

ENGINE_NATIVE = "pymupdf"
ENGINE_CLOUD = "google-vision"
ENGINE_LOCAL = "tesseract"

StageProgress = Callable[[str, int, int], None]


class ExtractionState(str, Enum):
    """Stage labels logged at each transition."""

    NATIVE_ATTEMPT = "native_attempt"
    OCR_REQUIRED = "ocr_required"
    PARTIAL_NATIVE_FALLBACK = "partial_native_fallback"
    FATAL = "fatal"
    DONE = "done"


def merge_texts(native_text: str, ocr_text: str) -> str:
    """Keep OCR text only when it is much longer than the native text."""
    if len(ocr_text) > len(native_text) * HYBRID_LENGTH_RATIO:
        return ocr_text
    return native_text


def method_label(method: ExtractionMethod) -> str:
    """Human-readable description of an extraction method."""
    match method:
        case ExtractionMethod.NATIVE:
            return "native text layer"
        case ExtractionMethod.OCR:
            return "OCR"
        case ExtractionMethod.HYBRID:
            return "hybrid native/OCR"
    raise ValueError(f"Unknown extraction method: {method!r}")


def _has_text(pages: list[PageResult]) -> bool:
    return any(page.text.strip() for page in pages)


def _log_progress(stage: str, current: int, total: int) -> None:
    logger.debug("%s page %d/%d", stage, current, total)


class ExtractionOrchestrator:
    """Choose and sequence extraction strategies for one document at a time."""

    def __init__(
        self,
        config: PipelineConfig,
        quota_tracker: QuotaTracker,
        cloud_client: Any | None = None,
        local_engine: Callable[..., list[PageResult]] | None = None,
        rasterizer: Callable[..., list[PageImage]] = rasterize_pdf,
        preprocessor: Callable[[list[PageImage]], list[PageImage]] = preprocess_pages,
        on_progress: StageProgress | None = None,
    ) -> None:
        self.config = config
        self.quota = quota_tracker
        self.cloud = cloud_client if cloud_client is not None else CloudOcrClient(config)
        self._local_ocr = local_engine or extract_with_ocr
        self._rasterize = rasterizer
        self._preprocess = preprocessor
        self._on_progress = on_progress or _log_progress

    @classmethod
    def from_config(cls, config: PipelineConfig | None = None, **kwargs: Any) -> ExtractionOrchestrator:
        cfg = config or load_pipeline_config()
        return cls(cfg, QuotaTracker.from_config(cfg), **kwargs)

    def _progress(self, stage: str) -> Callable[[int, int], None]:
        return lambda current, total: self._on_progress(stage, current, total)

    @staticmethod
    def _enter(state: ExtractionState, detail: str = "") -> None:
        logger.info("Extraction state -> %s %s", state.value, detail)

    # ------------------------------------------------------------------
    # OCR paths
    # ------------------------------------------------------------------
    def _cloud_ready(self) -> bool:
        if not self.cloud.is_available():
            logger.info("Cloud OCR unavailable, skipping")
            return False
        if not self.quota.check_quota_available():
            logger.warning("Cloud OCR quota exhausted, skipping")
            return False
        return True

    def _track_partial(self, exc: CloudOcrError) -> None:
        if exc.pages_billed:
            logger.info("Counting %d page(s) processed before the cloud fault", exc.pages_billed)
            self.quota.track_quota_usage(exc.pages_billed)

    def _cloud_on_images(self, images: list[PageImage]) -> list[PageResult] | None:
        if not self._cloud_ready():
            return None
        try:
            pages = self.cloud.annotate_pages(images, on_progress=self._progress("cloud-ocr"))
        except CloudOcrError as exc:
            logger.warning("Cloud OCR on page images failed (%s): %s", type(exc).__name__, exc)
            self._track_partial(exc)
            return None
        self.quota.track_quota_usage(len(images))
        if not _has_text(pages):
            logger.warning("Cloud OCR returned no text for %d page(s)", len(images))
            return None
        return pages

    def _cloud_on_pdf(self, pdf_bytes: bytes, page_count: int) -> list[PageResult] | None:
        if not self._cloud_ready():
            return None
        try:
            pages = self.cloud.annotate_pdf(
                pdf_bytes, page_count, on_progress=self._progress("cloud-ocr-batch"),
            )
        except CloudOcrError as exc:
            logger.warning("Cloud OCR on PDF failed (%s): %s", type(exc).__name__, exc)
            self._track_partial(exc)
            return None
        self.quota.track_quota_usage(page_count)
        if not _has_text(pages):
            logger.warning("Cloud OCR returned no text for the PDF")
            return None
        return pages

    def _local_on_images(self, images: list[PageImage]) -> list[PageResult] | None:
        try:
            pages = self._local_ocr(
                images,
                lang=self.config.tesseract_lang,
                on_progress=self._progress("local-ocr"),
            )
        except LocalOcrUnavailable as exc:
            logger.warning("Local OCR unavailable: %s", exc)
            return None
        if not _has_text(pages):
            logger.warning("Local OCR returned no text for %d page(s)", len(images))
            return None
        return pages

    def _render_pages(self, pdf_bytes: bytes, page_count: int) -> list[PageImage]:
        try:
            images = self._rasterize(
                pdf_bytes,
                page_count,
                scale=self.config.raster_scale,
                on_progress=self._progress("rasterize"),
            )
        except RasterizationFailure as exc:
            logger.warning("Rasterization failed, using direct-PDF cloud path: %s", exc)
            return []
        if not images:
            return []
        try:
            return self._preprocess(images)
        except Exception as exc:
            logger.warning("Preprocessing failed, using direct-PDF cloud path: %s", exc)
            return []

    def _run_ocr(self, pdf_bytes: bytes, page_count: int) -> tuple[list[PageResult], str] | None:
        """Try every OCR path in order; return ``(pages, engine)`` or None."""
        images = self._render_pages(pdf_bytes, page_count)
        if images:
            pages = self._cloud_on_images(images)
            if pages is not None:
                return pages, ENGINE_CLOUD
            pages = self._local_on_images(images)
            if pages is not None:
                return pages, ENGINE_LOCAL
            return None

        pages = self._cloud_on_pdf(pdf_bytes, page_count)
        if pages is not None:
            return pages, ENGINE_CLOUD
        return None

    # ------------------------------------------------------------------
    # Main entry
    # ------------------------------------------------------------------
    def extract(self, source: bytes | str | Path) -> ExtractionResult:
        """Extract text from a PDF (bytes or path)."""

        start = time.perf_counter()
        pdf_bytes = read_pdf_bytes(source)

        # -------------------------------------------------------------------
        # Step 1: Native text layer
        # -------------------------------------------------------------------
        native: NativeText = extract_native_text(pdf_bytes)
        self._enter(
            ExtractionState.NATIVE_ATTEMPT,
            f"(density {native.char_density:.0f} chars/page over {native.page_count} page(s))",
        )
        if is_native_sufficient(native):
            result = ExtractionResult(
                text=native.text,
                confidence=NATIVE_CONFIDENCE,
                method=ExtractionMethod.NATIVE,
                pages=split_native_pages(native.text),
                engine=ENGINE_NATIVE,
            )
            return self._finish(result, start)

        # -------------------------------------------------------------------
        # Step 2: OCR (cloud on images, local on images, cloud on PDF)
        # -------------------------------------------------------------------
        self._enter(ExtractionState.OCR_REQUIRED)
        outcome = self._run_ocr(pdf_bytes, native.page_count)
        if outcome is not None:
            pages, engine = outcome
            ocr_text = "\n\n".join(p.text.strip() for p in pages if p.text.strip())
            confidence = round(mean([p.confidence for p in pages]), 2)
            method = ExtractionMethod.OCR
            text = ocr_text
            if confidence < HYBRID_CONFIDENCE_THRESHOLD and native.text:
                logger.info("Low OCR confidence (%.1f), merging with native text", confidence)
                method = ExtractionMethod.HYBRID
                text = merge_texts(native.text, ocr_text)
                engine = f"{ENGINE_NATIVE}+{engine}"
            result = ExtractionResult(
                text=text,
                confidence=confidence,
                method=method,
                pages=pages,
                engine=engine,
            )
            return self._finish(result, start)

        # -------------------------------------------------------------------
        # Step 3: Partial native fallback / fatal
        # -------------------------------------------------------------------
        if native.text:
            self._enter(ExtractionState.PARTIAL_NATIVE_FALLBACK)
            result = ExtractionResult(
                text=native.text,
                confidence=PARTIAL_NATIVE_CONFIDENCE,
                method=ExtractionMethod.NATIVE,
                pages=split_native_pages(native.text, confidence=PARTIAL_NATIVE_CONFIDENCE),
                engine=ENGINE_NATIVE,
            )
            return self._finish(result, start)

        self._enter(ExtractionState.FATAL)
        raise ExtractionFailure(
            "No text could be extracted from the PDF: no text layer and every OCR path failed."
        )

    def _finish(self, result: ExtractionResult, start: float) -> ExtractionResult:
        result.processing_time_ms = int((time.perf_counter() - start) * 1000)
        self._enter(
            ExtractionState.DONE,
            f"via {method_label(result.method)} ({result.engine}), "
            f"confidence {result.confidence:.1f}, {result.processing_time_ms} ms",
        )
        return result


def extract_text(
    source: bytes | str | Path,
    config: PipelineConfig | None = None,
    **kwargs: Any,
) -> ExtractionResult:
    """Convenience wrapper building an orchestrator from configuration."""
    return ExtractionOrchestrator.from_config(config, **kwargs).extract(source)
