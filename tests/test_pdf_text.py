"""Tests for lexocr.pdf_text (native text layer)."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

import fitz

from lexocr.pdf_text import (
    NATIVE_CONFIDENCE,
    NativeText,
    char_density,
    extract_native_text,
    is_native_sufficient,
    split_native_pages,
)
from lexocr.schema import PageMethod
from lexocr.utils import PdfValidationError


def _make_pdf(page_texts: list[str]) -> bytes:
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(50, 50, 560, 800), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


class TestCharDensity(unittest.TestCase):
    def test_density(self) -> None:
        self.assertEqual(char_density("a" * 1500, 3), 500.0)

    def test_zero_pages(self) -> None:
        self.assertEqual(char_density("abc", 0), 3.0)

    def test_threshold_is_strict(self) -> None:
        self.assertFalse(is_native_sufficient(NativeText(text="a" * 1500, page_count=3)))
        self.assertTrue(is_native_sufficient(NativeText(text="a" * 1501, page_count=3)))


class TestExtractNativeText(unittest.TestCase):
    def test_pages_joined_with_form_feed(self) -> None:
        native = extract_native_text(_make_pdf(["Premier feuillet", "Second feuillet"]))
        self.assertEqual(native.page_count, 2)
        self.assertEqual(native.text, "Premier feuillet\fSecond feuillet")
        self.assertEqual(native.page_texts, ["Premier feuillet", "Second feuillet"])

    def test_blank_pdf(self) -> None:
        native = extract_native_text(_make_pdf(["", ""]))
        self.assertEqual(native.text, "")
        self.assertEqual(native.page_count, 2)
        self.assertFalse(is_native_sufficient(native))

    def test_from_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "loi.pdf"
            path.write_bytes(_make_pdf(["Loi portant code civil"]))
            self.assertIn("code civil", extract_native_text(path).text)

    def test_invalid_bytes(self) -> None:
        with self.assertRaises(PdfValidationError):
            extract_native_text(b"this is not a pdf")

    def test_empty_bytes(self) -> None:
        with self.assertRaises(PdfValidationError):
            extract_native_text(b"")


class TestSplitNativePages(unittest.TestCase):
    def test_split_on_form_feed(self) -> None:
        pages = split_native_pages("page un\fpage deux\fpage trois")
        self.assertEqual([p.page_number for p in pages], [1, 2, 3])
        self.assertEqual(pages[1].text, "page deux")
        self.assertTrue(all(p.method == PageMethod.NATIVE for p in pages))
        self.assertTrue(all(p.confidence == NATIVE_CONFIDENCE for p in pages))

    def test_split_on_blank_runs(self) -> None:
        pages = split_native_pages("haut\n\n\nbas", confidence=30.0)
        self.assertEqual([p.text for p in pages], ["haut", "bas"])
        self.assertEqual(pages[0].confidence, 30.0)


if __name__ == "__main__":
    unittest.main()
