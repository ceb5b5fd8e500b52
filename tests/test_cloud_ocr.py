"""Tests for lexocr.providers.cloud_ocr (Vision client mocked)."""

from __future__ import annotations

import dataclasses
import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from lexocr.config import PipelineConfig
from lexocr.providers.cloud_ocr import (
    DEFAULT_CLOUD_CONFIDENCE,
    CloudOcrClient,
    _confidence,
    fault_for_code,
    map_api_error,
    page_chunks,
)
from lexocr.schema import PageImage, PageMethod
from lexocr.utils import (
    CloudOcrError,
    CloudOcrInvalidImage,
    CloudOcrPermissionDenied,
    CloudOcrQuotaExceeded,
    CloudOcrUnavailable,
)

_OK = SimpleNamespace(code=0, message="")


def _response(text: str, confidence: float = 0.9, page_number: int = 0, code: int = 0):
    return SimpleNamespace(
        error=SimpleNamespace(code=code, message="rejected" if code else ""),
        full_text_annotation=SimpleNamespace(
            text=text, pages=[SimpleNamespace(confidence=confidence, blocks=[])]
        ),
        text_annotations=[],
        context=SimpleNamespace(page_number=page_number),
    )


def _image(page_number: int) -> PageImage:
    return PageImage(page_number=page_number, data=b"png", width=10, height=10)


def _batch_for(requests):
    pages = list(requests[0].pages)
    return SimpleNamespace(
        responses=[
            SimpleNamespace(
                error=_OK,
                responses=[_response(f"page {n}", page_number=n) for n in pages],
            )
        ]
    )


class _ApiError(Exception):
    def __init__(self, message: str, code=None, grpc_status_code=None) -> None:
        super().__init__(message)
        self.code = code
        self.grpc_status_code = grpc_status_code


class TestPageChunks(unittest.TestCase):
    def test_chunks_of_five(self) -> None:
        self.assertEqual(
            page_chunks(12),
            [[1, 2, 3, 4, 5], [6, 7, 8, 9, 10], [11, 12]],
        )

    def test_no_pages(self) -> None:
        self.assertEqual(page_chunks(0), [])

    def test_invalid_size(self) -> None:
        with self.assertRaises(ValueError):
            page_chunks(3, size=0)


class TestErrorMapping(unittest.TestCase):
    def test_fault_for_code(self) -> None:
        self.assertIsInstance(fault_for_code(8), CloudOcrQuotaExceeded)
        self.assertIsInstance(fault_for_code(7), CloudOcrPermissionDenied)
        self.assertIsInstance(fault_for_code(3), CloudOcrInvalidImage)
        self.assertIs(type(fault_for_code(13, "internal")), CloudOcrError)

    def test_grpc_status_code(self) -> None:
        exc = _ApiError(
            "quota", grpc_status_code=SimpleNamespace(value=(8, "RESOURCE_EXHAUSTED"))
        )
        fault = map_api_error(exc)
        self.assertIsInstance(fault, CloudOcrQuotaExceeded)
        self.assertIs(fault.__cause__, exc)

    def test_http_status_code(self) -> None:
        self.assertIsInstance(map_api_error(_ApiError("denied", code=403)), CloudOcrPermissionDenied)
        self.assertIsInstance(map_api_error(_ApiError("slow down", code=429)), CloudOcrQuotaExceeded)

    def test_unknown_error(self) -> None:
        self.assertIs(type(map_api_error(RuntimeError("network"))), CloudOcrError)

    def test_existing_fault_passthrough(self) -> None:
        fault = CloudOcrInvalidImage("bad")
        self.assertIs(map_api_error(fault), fault)


class TestConfidence(unittest.TestCase):
    def test_page_confidence(self) -> None:
        annotation = SimpleNamespace(pages=[SimpleNamespace(confidence=0.9, blocks=[])])
        self.assertEqual(_confidence(annotation), 90.0)

    def test_block_confidence_fallback(self) -> None:
        blocks = [SimpleNamespace(confidence=0.8), SimpleNamespace(confidence=0.6)]
        annotation = SimpleNamespace(pages=[SimpleNamespace(confidence=0, blocks=blocks)])
        self.assertEqual(_confidence(annotation), 70.0)

    def test_default_when_missing(self) -> None:
        self.assertEqual(_confidence(SimpleNamespace(pages=[])), DEFAULT_CLOUD_CONFIDENCE)


class TestAvailability(unittest.TestCase):
    def test_disabled(self) -> None:
        self.assertFalse(CloudOcrClient(PipelineConfig(cloud_ocr_enabled=False)).is_available())

    def test_incomplete_configuration(self) -> None:
        cfg = PipelineConfig(cloud_ocr_enabled=True, project_id="", credentials_path="")
        client = CloudOcrClient(cfg)
        self.assertFalse(client.is_available())
        with self.assertRaises(CloudOcrUnavailable):
            client.annotate_pdf(b"%PDF", 1)

    def test_missing_credentials_file(self) -> None:
        cfg = PipelineConfig(
            cloud_ocr_enabled=True,
            project_id="demo",
            credentials_path="/nonexistent/credentials.json",
        )
        self.assertFalse(CloudOcrClient(cfg).is_available())

    def test_injected_client(self) -> None:
        self.assertTrue(CloudOcrClient(PipelineConfig(), client=MagicMock()).is_available())


class TestAnnotatePages(unittest.TestCase):
    def test_pages_in_order(self) -> None:
        vision = MagicMock()
        vision.document_text_detection.side_effect = [
            _response("Article 1", 0.97),
            _response("Article 2", 0.91),
        ]
        results = CloudOcrClient(PipelineConfig(), client=vision).annotate_pages(
            [_image(1), _image(2)]
        )
        self.assertEqual([r.text for r in results], ["Article 1", "Article 2"])
        self.assertEqual(results[0].confidence, 97.0)
        self.assertEqual(results[1].method, PageMethod.OCR)

    def test_invalid_image_blanks_only_that_page(self) -> None:
        vision = MagicMock()
        vision.document_text_detection.side_effect = [
            _response("Article 1"),
            _response("", code=3),
            _response("Article 3"),
        ]
        results = CloudOcrClient(PipelineConfig(), client=vision).annotate_pages(
            [_image(1), _image(2), _image(3)]
        )
        self.assertEqual([r.text for r in results], ["Article 1", "", "Article 3"])
        self.assertEqual(results[1].confidence, 0.0)

    def test_quota_error_aborts(self) -> None:
        vision = MagicMock()
        vision.document_text_detection.return_value = _response("", code=8)
        with self.assertRaises(CloudOcrQuotaExceeded):
            CloudOcrClient(PipelineConfig(), client=vision).annotate_pages([_image(1)])

    def test_transport_error_mapped(self) -> None:
        vision = MagicMock()
        vision.document_text_detection.side_effect = _ApiError("denied", code=403)
        with self.assertRaises(CloudOcrPermissionDenied):
            CloudOcrClient(PipelineConfig(), client=vision).annotate_pages([_image(1)])

    def test_fault_reports_pages_already_processed(self) -> None:
        vision = MagicMock()
        vision.document_text_detection.side_effect = [
            _response("Article 1"),
            _response("", code=3),
            _response("Article 3"),
            _ApiError("quota", code=429),
        ]
        with self.assertRaises(CloudOcrQuotaExceeded) as ctx:
            CloudOcrClient(PipelineConfig(), client=vision).annotate_pages(
                [_image(n) for n in range(1, 11)]
            )
        self.assertEqual(ctx.exception.pages_billed, 3)
        self.assertEqual(vision.document_text_detection.call_count, 4)

    def test_progress_reported(self) -> None:
        vision = MagicMock()
        vision.document_text_detection.return_value = _response("texte")
        progress = MagicMock()
        CloudOcrClient(PipelineConfig(), client=vision).annotate_pages(
            [_image(1), _image(2)], on_progress=progress
        )
        progress.assert_any_call(2, 2)

    def test_empty_text_has_zero_confidence(self) -> None:
        vision = MagicMock()
        vision.document_text_detection.return_value = _response("")
        results = CloudOcrClient(PipelineConfig(), client=vision).annotate_pages([_image(1)])
        self.assertEqual(results[0].confidence, 0.0)


class TestAnnotatePdf(unittest.TestCase):
    def test_chunked_requests(self) -> None:
        vision = MagicMock()
        vision.batch_annotate_files.side_effect = lambda requests: _batch_for(requests)
        results = CloudOcrClient(PipelineConfig(), client=vision).annotate_pdf(b"%PDF", 7)
        self.assertEqual(vision.batch_annotate_files.call_count, 2)
        self.assertEqual([r.page_number for r in results], list(range(1, 8)))
        self.assertEqual(results[6].text, "page 7")

    def test_parallel_chunks_keep_page_order(self) -> None:
        vision = MagicMock()
        vision.batch_annotate_files.side_effect = lambda requests: _batch_for(requests)
        cfg = dataclasses.replace(PipelineConfig(), cloud_ocr_workers=3)
        results = CloudOcrClient(cfg, client=vision).annotate_pdf(b"%PDF", 12)
        self.assertEqual([r.page_number for r in results], list(range(1, 13)))

    def test_fault_reports_completed_chunks(self) -> None:
        vision = MagicMock()
        vision.batch_annotate_files.side_effect = [
            _batch_for([SimpleNamespace(pages=[1, 2, 3, 4, 5])]),
            _ApiError("quota", code=429),
        ]
        with self.assertRaises(CloudOcrQuotaExceeded) as ctx:
            CloudOcrClient(PipelineConfig(), client=vision).annotate_pdf(b"%PDF", 12)
        self.assertEqual(ctx.exception.pages_billed, 5)

    def test_file_level_error(self) -> None:
        vision = MagicMock()
        vision.batch_annotate_files.return_value = SimpleNamespace(
            responses=[SimpleNamespace(error=SimpleNamespace(code=7, message="no"), responses=[])]
        )
        with self.assertRaises(CloudOcrPermissionDenied):
            CloudOcrClient(PipelineConfig(), client=vision).annotate_pdf(b"%PDF", 2)


if __name__ == "__main__":
    unittest.main()
