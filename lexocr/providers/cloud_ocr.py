"""Google Cloud Vision OCR: paid and high accuracy, gated by the page quota.

Two entry points:

* ``annotate_pages`` sends rendered page images one by one
  (``DOCUMENT_TEXT_DETECTION``).
* ``annotate_pdf`` sends the PDF itself through ``batch_annotate_files``;
  the API accepts at most 5 pages per file request so page ranges are
  chunked and one request is issued per chunk.

The client reports itself unavailable (never raises) when disabled or
misconfigured, so the orchestrator can go straight to local OCR.

Usage::

    from lexocr.providers.cloud_ocr import CloudOcrClient

    client = CloudOcrClient(config)
    if client.is_available():
        pages = client.annotate_pages(images)
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable

from ..config import PipelineConfig
from ..schema import PageImage, PageMethod, PageResult
from ..utils import (
    CloudOcrError,
    CloudOcrInvalidImage,
    CloudOcrPermissionDenied,
    CloudOcrQuotaExceeded,
    CloudOcrUnavailable,
    mean,
)

logger = logging.getLogger(__name__)

CLOUD_PDF_BATCH_SIZE = 5
DEFAULT_CLOUD_CONFIDENCE = 95.0

# google.rpc.Code values returned by the Vision API
RPC_INVALID_ARGUMENT = 3
RPC_PERMISSION_DENIED = 7
RPC_RESOURCE_EXHAUSTED = 8

_FAULTS_BY_CODE: dict[int, type[CloudOcrError]] = {
    RPC_RESOURCE_EXHAUSTED: CloudOcrQuotaExceeded,
    RPC_PERMISSION_DENIED: CloudOcrPermissionDenied,
    RPC_INVALID_ARGUMENT: CloudOcrInvalidImage,
}

ProgressCallback = Callable[[int, int], None]


def page_chunks(page_count: int, size: int = CLOUD_PDF_BATCH_SIZE) -> list[list[int]]:
    """Split 1-based page numbers into consecutive chunks of at most ``size``."""
    if size < 1:
        raise ValueError("size must be >= 1")
    pages = list(range(1, page_count + 1))
    return [pages[i : i + size] for i in range(0, len(pages), size)]


def fault_for_code(code: int, message: str = "") -> CloudOcrError:
    """Map a google.rpc status code to a cloud OCR fault."""
    fault_cls = _FAULTS_BY_CODE.get(code, CloudOcrError)
    return fault_cls(f"Cloud Vision error {code}: {message}".strip())


def map_api_error(exc: Exception) -> CloudOcrError:
    """Map a google-api-core / gRPC exception to a cloud OCR fault."""
    if isinstance(exc, CloudOcrError):
        return exc
    grpc_code = getattr(exc, "grpc_status_code", None)
    code: int | None = None
    if grpc_code is not None:
        value = getattr(grpc_code, "value", grpc_code)
        code = value[0] if isinstance(value, tuple) else value
    if code is None:
        code = {429: RPC_RESOURCE_EXHAUSTED, 403: RPC_PERMISSION_DENIED, 400: RPC_INVALID_ARGUMENT}.get(
            getattr(exc, "code", None), -1
        )
    fault = fault_for_code(int(code), str(exc))
    fault.__cause__ = exc
    return fault


def _confidence(annotation: Any) -> float:
    """Page confidence (0–100) from a ``full_text_annotation``."""
    pages = list(getattr(annotation, "pages", None) or [])
    page_conf = [p.confidence for p in pages if getattr(p, "confidence", 0)]
    if page_conf:
        return round(mean(page_conf) * 100, 2)
    block_conf = [
        b.confidence
        for p in pages
        for b in (getattr(p, "blocks", None) or [])
        if getattr(b, "confidence", 0)
    ]
    if block_conf:
        return round(mean(block_conf) * 100, 2)
    return DEFAULT_CLOUD_CONFIDENCE


def _response_text(response: Any) -> str:
    annotation = getattr(response, "full_text_annotation", None)
    text = getattr(annotation, "text", "") if annotation is not None else ""
    if not text:
        annotations = list(getattr(response, "text_annotations", None) or [])
        if annotations:
            text = annotations[0].description or ""
    return text


def _raise_for_response_error(response: Any) -> None:
    error = getattr(response, "error", None)
    code = getattr(error, "code", 0) if error is not None else 0
    if code:
        raise fault_for_code(code, getattr(error, "message", ""))


class CloudOcrClient:
    """Thin wrapper over ``google.cloud.vision.ImageAnnotatorClient``."""

    def __init__(self, config: PipelineConfig, client: Any | None = None) -> None:
        self.config = config
        self._client = client
        self._init_failed = False

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------
    def _credentials_file(self) -> Path | None:
        if not self.config.credentials_path:
            return None
        return Path(self.config.credentials_path).expanduser().resolve()

    def _get_client(self) -> Any | None:
        """Lazy-load the Vision client; None when disabled or misconfigured."""
        if self._client is not None:
            return self._client
        if self._init_failed or not self.config.cloud_ocr_enabled:
            return None

        credentials = self._credentials_file()
        if not self.config.project_id or credentials is None:
            logger.warning("Cloud Vision configuration incomplete (project id / credentials)")
            self._init_failed = True
            return None
        if not credentials.is_file():
            logger.warning("Cloud Vision credentials file not found: %s", credentials)
            self._init_failed = True
            return None

        try:
            from google.cloud import vision

            self._client = vision.ImageAnnotatorClient.from_service_account_file(
                str(credentials),
                client_options={"quota_project_id": self.config.project_id},
            )
        except Exception as exc:
            logger.warning("Cloud Vision client initialisation failed: %s", exc)
            self._init_failed = True
            return None
        logger.info("Cloud Vision client initialised for project %s", self.config.project_id)
        return self._client

    def is_available(self) -> bool:
        return self._get_client() is not None

    def _require_client(self) -> Any:
        client = self._get_client()
        if client is None:
            raise CloudOcrUnavailable("Cloud Vision client not available")
        return client

    # ------------------------------------------------------------------
    # Per-image path
    # ------------------------------------------------------------------
    def annotate_image(self, png_bytes: bytes) -> tuple[str, float]:
        """OCR one image. Returns ``(text, confidence)``."""
        from google.cloud import vision

        client = self._require_client()
        try:
            response = client.document_text_detection(image=vision.Image(content=png_bytes))
        except Exception as exc:
            raise map_api_error(exc) from exc
        _raise_for_response_error(response)

        text = _response_text(response)
        if not text:
            return "", 0.0
        return text, _confidence(response.full_text_annotation)

    def annotate_pages(
        self,
        images: list[PageImage],
        on_progress: ProgressCallback | None = None,
    ) -> list[PageResult]:
        """OCR rendered pages sequentially.

        An invalid image only blanks its own page; quota and permission
        faults abort the whole call, carrying the number of pages already
        processed in ``pages_billed``.
        """
        results: list[PageResult] = []
        total = len(images)
        for index, image in enumerate(images, start=1):
            if on_progress:
                on_progress(index, total)
            try:
                text, confidence = self.annotate_image(image.data)
            except CloudOcrInvalidImage as exc:
                logger.warning("Cloud Vision rejected page %d: %s", image.page_number, exc)
                text, confidence = "", 0.0
            except CloudOcrError as exc:
                exc.pages_billed = len(results)
                raise
            results.append(
                PageResult(
                    page_number=image.page_number,
                    text=text,
                    confidence=confidence,
                    method=PageMethod.OCR,
                )
            )
        return results

    # ------------------------------------------------------------------
    # Direct-PDF batch path
    # ------------------------------------------------------------------
    def _annotate_pdf_chunk(self, pdf_bytes: bytes, pages: list[int]) -> list[PageResult]:
        from google.cloud import vision

        client = self._require_client()
        request = vision.AnnotateFileRequest(
            input_config=vision.InputConfig(content=pdf_bytes, mime_type="application/pdf"),
            features=[vision.Feature(type_=vision.Feature.Type.DOCUMENT_TEXT_DETECTION)],
            pages=pages,
        )
        try:
            batch = client.batch_annotate_files(requests=[request])
        except Exception as exc:
            raise map_api_error(exc) from exc

        file_response = batch.responses[0]
        _raise_for_response_error(file_response)

        results: list[PageResult] = []
        for index, response in enumerate(file_response.responses):
            context = getattr(response, "context", None)
            page_number = getattr(context, "page_number", 0) or pages[index]
            try:
                _raise_for_response_error(response)
                text = _response_text(response)
                confidence = _confidence(response.full_text_annotation) if text else 0.0
            except CloudOcrInvalidImage as exc:
                logger.warning("Cloud Vision rejected PDF page %d: %s", page_number, exc)
                text, confidence = "", 0.0
            results.append(
                PageResult(
                    page_number=page_number,
                    text=text,
                    confidence=confidence,
                    method=PageMethod.OCR,
                )
            )
        logger.debug("Cloud Vision PDF chunk %s -> %d page(s)", pages, len(results))
        return results

    def annotate_pdf(
        self,
        pdf_bytes: bytes,
        page_count: int,
        on_progress: ProgressCallback | None = None,
    ) -> list[PageResult]:
        """OCR a PDF directly, ``CLOUD_PDF_BATCH_SIZE`` pages per request.

        A fault in one chunk aborts the call; its ``pages_billed`` counts
        the pages of every chunk that completed.
        """
        self._require_client()
        chunks = page_chunks(page_count)
        n_workers = min(max(1, self.config.cloud_ocr_workers), max(1, len(chunks)))
        billed = 0
        billed_lock = threading.Lock()

        def _run(item: tuple[int, list[int]]) -> list[PageResult]:
            nonlocal billed
            index, pages = item
            if on_progress:
                on_progress(index, len(chunks))
            chunk = self._annotate_pdf_chunk(pdf_bytes, pages)
            with billed_lock:
                billed += len(pages)
            return chunk

        try:
            if n_workers <= 1:
                chunk_results = [_run(item) for item in enumerate(chunks, start=1)]
            else:
                with ThreadPoolExecutor(max_workers=n_workers) as executor:
                    chunk_results = list(executor.map(_run, enumerate(chunks, start=1)))
        except CloudOcrError as exc:
            exc.pages_billed = billed
            raise

        results = [page for chunk in chunk_results for page in chunk]
        return sorted(results, key=lambda p: p.page_number)
