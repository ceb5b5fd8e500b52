"""Tests for lexocr.rasterize."""

from __future__ import annotations

import unittest
from io import BytesIO
from unittest.mock import MagicMock, patch

from PIL import Image

from lexocr.rasterize import rasterize_pdf, scale_to_dpi
from lexocr.utils import RasterizationFailure


def _fake_convert(pdf_bytes, dpi, first_page, last_page):
    return [Image.new("RGB", (int(8.5 * dpi), 11 * dpi), "white")]


class TestScaleToDpi(unittest.TestCase):
    def test_default_scale(self) -> None:
        self.assertEqual(scale_to_dpi(2.0), 144)

    def test_unit_scale(self) -> None:
        self.assertEqual(scale_to_dpi(1.0), 72)

    def test_minimum(self) -> None:
        self.assertEqual(scale_to_dpi(0.001), 1)


@patch("lexocr.rasterize.check_binary_exists", return_value=True)
class TestRasterizePdf(unittest.TestCase):
    @patch("lexocr.rasterize.convert_from_bytes", side_effect=_fake_convert)
    def test_renders_each_page_as_png(self, convert, _binary) -> None:
        pages = rasterize_pdf(b"%PDF", page_count=3, scale=1.0)
        self.assertEqual([p.page_number for p in pages], [1, 2, 3])
        self.assertEqual(convert.call_count, 3)
        self.assertEqual(convert.call_args.kwargs["first_page"], 3)
        self.assertEqual(convert.call_args.kwargs["dpi"], 72)
        with Image.open(BytesIO(pages[0].data)) as image:
            self.assertEqual(image.format, "PNG")
            self.assertEqual(image.size, (pages[0].width, pages[0].height))

    @patch("lexocr.rasterize.convert_from_bytes", side_effect=_fake_convert)
    def test_max_pages(self, _convert, _binary) -> None:
        pages = rasterize_pdf(b"%PDF", page_count=10, max_pages=2)
        self.assertEqual(len(pages), 2)

    @patch("lexocr.rasterize.convert_from_bytes", side_effect=_fake_convert)
    def test_progress_reported(self, _convert, _binary) -> None:
        progress = MagicMock()
        rasterize_pdf(b"%PDF", page_count=2, on_progress=progress)
        progress.assert_any_call(1, 2)
        progress.assert_any_call(2, 2)

    @patch("lexocr.rasterize.convert_from_bytes", side_effect=RuntimeError("poppler crashed"))
    def test_renderer_error_wrapped(self, _convert, _binary) -> None:
        with self.assertRaises(RasterizationFailure) as ctx:
            rasterize_pdf(b"%PDF", page_count=1)
        self.assertIn("page 1", str(ctx.exception))

    @patch("lexocr.rasterize.convert_from_bytes", return_value=[])
    def test_empty_render_fails(self, _convert, _binary) -> None:
        with self.assertRaises(RasterizationFailure):
            rasterize_pdf(b"%PDF", page_count=1)


class TestRasterizeMissingBinary(unittest.TestCase):
    @patch("lexocr.rasterize.check_binary_exists", return_value=False)
    def test_missing_pdftoppm(self, _binary) -> None:
        with self.assertRaises(RasterizationFailure):
            rasterize_pdf(b"%PDF", page_count=1)


if __name__ == "__main__":
    unittest.main()
