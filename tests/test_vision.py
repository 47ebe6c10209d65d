"""
Vision Module Tests

Trimming on synthetic Pillow images and rasterizer error mapping with a
patched pdf2image.
"""

import io
import logging
import unittest
from unittest.mock import patch

from PIL import Image, ImageDraw
from pdf2image.exceptions import PDFPageCountError

from sheetsnap.docuflow.vision import PDFRasterizer, WhitespaceTrimmer, encode_png
from sheetsnap.errors import RenderError, TrimError

logging.basicConfig(level=logging.INFO)


def make_png(size=(100, 80), background=(255, 255, 255), box=None, fill=(0, 0, 0)):
    img = Image.new("RGB", size, background)
    if box:
        ImageDraw.Draw(img).rectangle(box, fill=fill)
    return encode_png(img)


def open_png(data):
    return Image.open(io.BytesIO(data))


class TestWhitespaceTrimmer(unittest.TestCase):

    def setUp(self):
        self.trimmer = WhitespaceTrimmer(fuzz_percent=4)

    def test_trims_to_content(self):
        # rectangle() is inclusive of both corners: 21x21 pixels
        data = make_png(box=(20, 10, 40, 30))
        trimmed = open_png(self.trimmer.trim(data))
        self.assertEqual(trimmed.size, (21, 21))

    def test_near_background_within_fuzz_is_trimmed(self):
        img = Image.new("RGB", (100, 80), (255, 255, 255))
        draw = ImageDraw.Draw(img)
        draw.rectangle((0, 0, 99, 5), fill=(250, 250, 250))  # ~2% off white
        draw.rectangle((30, 30, 39, 39), fill=(10, 10, 10))
        
        trimmed = open_png(self.trimmer.trim(encode_png(img)))
        self.assertEqual(trimmed.size, (10, 10))

    def test_content_outside_fuzz_is_kept(self):
        img = Image.new("RGB", (100, 80), (255, 255, 255))
        draw = ImageDraw.Draw(img)
        draw.rectangle((0, 70, 99, 79), fill=(200, 200, 200))  # ~22% off white
        draw.rectangle((30, 30, 39, 39), fill=(10, 10, 10))
        
        trimmed = open_png(self.trimmer.trim(encode_png(img)))
        self.assertEqual(trimmed.size, (100, 50))

    def test_no_border_returns_same_dimensions(self):
        img = Image.new("RGB", (30, 20), (0, 0, 0))
        draw = ImageDraw.Draw(img)
        draw.rectangle((0, 19, 29, 19), fill=(255, 255, 255))
        draw.rectangle((29, 0, 29, 19), fill=(255, 255, 255))
        
        trimmed = open_png(self.trimmer.trim(encode_png(img)))
        self.assertEqual(trimmed.size, (30, 20))

    def test_uniform_image_raises(self):
        with self.assertRaises(TrimError):
            self.trimmer.trim(make_png())

    def test_garbage_raises(self):
        with self.assertRaises(TrimError):
            self.trimmer.trim(b"not an image")

    def test_trim_error_is_render_error(self):
        self.assertTrue(issubclass(TrimError, RenderError))


class TestPDFRasterizer(unittest.TestCase):

    @patch("sheetsnap.docuflow.vision.convert_from_bytes")
    def test_first_page_at_long_edge(self, mock_convert):
        mock_convert.return_value = [Image.new("RGB", (1600, 1200), "white")]
        
        data = PDFRasterizer().rasterize(b"%PDF", 1600)
        
        kwargs = mock_convert.call_args.kwargs
        self.assertEqual(kwargs["size"], 1600)
        self.assertEqual(kwargs["first_page"], 1)
        self.assertEqual(kwargs["last_page"], 1)
        self.assertEqual(open_png(data).size, (1600, 1200))

    @patch("sheetsnap.docuflow.vision.convert_from_bytes")
    def test_pdf2image_errors_become_render_errors(self, mock_convert):
        mock_convert.side_effect = PDFPageCountError("Unable to get page count")
        with self.assertRaises(RenderError):
            PDFRasterizer().rasterize(b"junk", 1600)

    @patch("sheetsnap.docuflow.vision.convert_from_bytes")
    def test_no_pages_is_render_error(self, mock_convert):
        mock_convert.return_value = []
        with self.assertRaises(RenderError):
            PDFRasterizer().rasterize(b"%PDF", 1600)


if __name__ == "__main__":
    unittest.main()
