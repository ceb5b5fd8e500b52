"""Tests for lexocr.ocr (tesseract calls mocked)."""

from __future__ import annotations

import unittest
from io import BytesIO
from unittest.mock import MagicMock, patch

from PIL import Image

from lexocr.ocr import _build_config, _extract_tokens, extract_with_ocr, ocr_image
from lexocr.schema import PageImage, PageMethod
from lexocr.utils import LocalOcrUnavailable


def _png() -> bytes:
    buf = BytesIO()
    Image.new("L", (60, 30), 255).save(buf, format="PNG")
    return buf.getvalue()


def _page(page_number: int) -> PageImage:
    return PageImage(page_number=page_number, data=_png(), width=60, height=30)


_DATA = {"text": ["Article", "", "premier"], "conf": ["90", "-1", "80"]}


class TestBuildConfig(unittest.TestCase):
    def test_default(self) -> None:
        self.assertEqual(_build_config(), "--oem 1 --psm 3")

    def test_tessdata(self) -> None:
        self.assertIn('--tessdata-dir "/opt/tessdata"', _build_config(tessdata_path="/opt/tessdata"))


class TestExtractTokens(unittest.TestCase):
    def test_skips_blank_and_negative(self) -> None:
        texts, confs = _extract_tokens(_DATA)
        self.assertEqual(texts, ["Article", "premier"])
        self.assertEqual(confs, [90.0, 80.0])

    def test_malformed_confidence(self) -> None:
        texts, confs = _extract_tokens({"text": ["mot"], "conf": ["n/a"]})
        self.assertEqual(texts, [])
        self.assertEqual(confs, [])


class TestOcrImage(unittest.TestCase):
    @patch("lexocr.ocr.pytesseract.image_to_data", return_value=_DATA)
    @patch("lexocr.ocr.pytesseract.image_to_string", return_value="  Article premier\n")
    def test_text_and_mean_confidence(self, to_string, _to_data) -> None:
        text, confidence = ocr_image(_png(), lang="fra")
        self.assertEqual(text, "Article premier")
        self.assertEqual(confidence, 85.0)
        self.assertEqual(to_string.call_args.kwargs["lang"], "fra")

    @patch("lexocr.ocr.pytesseract.image_to_data", return_value={"text": [], "conf": []})
    @patch("lexocr.ocr.pytesseract.image_to_string", return_value="   ")
    def test_blank_page(self, _to_string, _to_data) -> None:
        self.assertEqual(ocr_image(_png()), ("", 0.0))


class TestExtractWithOcr(unittest.TestCase):
    @patch("lexocr.ocr.is_available", return_value=False)
    def test_missing_binary(self, _available) -> None:
        with self.assertRaises(LocalOcrUnavailable):
            extract_with_ocr([_page(1)])

    @patch("lexocr.ocr.ocr_image", return_value=("Texte reconnu", 88.0))
    @patch("lexocr.ocr.is_available", return_value=True)
    def test_pages_in_order(self, _available, _ocr) -> None:
        progress = MagicMock()
        results = extract_with_ocr([_page(1), _page(2)], on_progress=progress)
        self.assertEqual([r.page_number for r in results], [1, 2])
        self.assertEqual(results[0].method, PageMethod.OCR)
        self.assertEqual(results[1].confidence, 88.0)
        progress.assert_any_call(2, 2)

    @patch(
        "lexocr.ocr.ocr_image",
        side_effect=[("Page un", 90.0), RuntimeError("tesseract crashed"), ("Page trois", 70.0)],
    )
    @patch("lexocr.ocr.is_available", return_value=True)
    def test_failed_page_is_blank(self, _available, _ocr) -> None:
        with self.assertLogs("lexocr.ocr", level="WARNING") as logs:
            results = extract_with_ocr([_page(1), _page(2), _page(3)])
        self.assertEqual([r.text for r in results], ["Page un", "", "Page trois"])
        self.assertEqual(results[1].confidence, 0.0)
        self.assertTrue(any("page 2" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
