"""
Render Pipeline Tests

Budget check, the single resolution retry and trim fallback, using fakes
for the exporter, rasterizer and trimmer.
"""

import logging
import unittest
from unittest.mock import MagicMock

from sheetsnap.docuflow.renderer import RenderPipeline, reduced_resolution
from sheetsnap.errors import RemoteServiceError, RenderError, TrimError
from sheetsnap.models import ExportOptions

logging.basicConfig(level=logging.INFO)

MB = 1024 * 1024


class FakeRasterizer:
    """Returns an image whose byte size is looked up by resolution."""

    def __init__(self, sizes):
        self.sizes = sizes
        self.calls = []

    def rasterize(self, pdf_bytes, resolution):
        self.calls.append(resolution)
        return b"\x89" * self.sizes[resolution]


class ShrinkingTrimmer:
    """Trims a fixed number of bytes off every image."""

    def __init__(self, shrink=0):
        self.shrink = shrink
        self.calls = 0

    def trim(self, png_bytes):
        self.calls += 1
        return png_bytes[:len(png_bytes) - self.shrink]


class TestReducedResolution(unittest.TestCase):

    def test_formula(self):
        self.assertEqual(reduced_resolution(1600, 0.75, 800), 1200)
        self.assertEqual(reduced_resolution(1001, 0.75, 600), 750)

    def test_floor_bound(self):
        self.assertEqual(reduced_resolution(900, 0.75, 800), 800)


class TestRenderPipeline(unittest.TestCase):

    def setUp(self):
        self.exporter = MagicMock()
        self.exporter.export_pdf.return_value = b"%PDF-1.4 fake"
        self.options = ExportOptions(gridlines=True)

    def make(self, sizes, trimmer=None):
        self.rasterizer = FakeRasterizer(sizes)
        self.trimmer = trimmer or ShrinkingTrimmer()
        return RenderPipeline(
            exporter=self.exporter,
            rasterizer=self.rasterizer,
            trimmer=self.trimmer,
            options=self.options,
            shrink_factor=0.75,
            min_resolution=800
        )

    def test_within_budget_no_retry(self):
        pipeline = self.make({1600: 2 * MB})
        
        artifact = pipeline.render(42, budget=5 * MB, start_resolution=1600)
        
        self.exporter.export_pdf.assert_called_once_with(42, self.options)
        self.assertEqual(self.rasterizer.calls, [1600])
        self.assertEqual(artifact.size_in_bytes, 2 * MB)
        self.assertEqual(artifact.resolution, 1600)
        self.assertTrue(artifact.trimmed)
        self.assertEqual(pipeline.last_document, b"%PDF-1.4 fake")

    def test_budget_is_inclusive(self):
        pipeline = self.make({1600: 5 * MB})
        pipeline.render(1, budget=5 * MB, start_resolution=1600)
        self.assertEqual(self.rasterizer.calls, [1600])

    def test_over_budget_retries_once(self):
        pipeline = self.make({1600: 6 * MB, 1200: 3 * MB})
        
        artifact = pipeline.render(42, budget=5 * MB, start_resolution=1600)
        
        self.exporter.export_pdf.assert_called_once()
        self.assertEqual(self.rasterizer.calls, [1600, 1200])
        self.assertEqual(artifact.resolution, 1200)
        self.assertEqual(artifact.size_in_bytes, 3 * MB)

    def test_retry_still_over_budget_returns_anyway(self):
        pipeline = self.make({1600: 9 * MB, 1200: 7 * MB})
        
        artifact = pipeline.render(42, budget=5 * MB, start_resolution=1600)
        
        self.assertEqual(self.rasterizer.calls, [1600, 1200])
        self.assertEqual(artifact.resolution, 1200)
        self.assertEqual(artifact.size_in_bytes, 7 * MB)

    def test_retry_uses_floor_bound(self):
        pipeline = self.make({1000: 6 * MB, 800: 4 * MB})
        artifact = pipeline.render(42, budget=5 * MB, start_resolution=1000)
        self.assertEqual(self.rasterizer.calls, [1000, 800])
        self.assertEqual(artifact.resolution, 800)

    def test_no_retry_when_already_at_floor(self):
        pipeline = self.make({700: 6 * MB})
        artifact = pipeline.render(42, budget=5 * MB, start_resolution=700)
        self.assertEqual(self.rasterizer.calls, [700])
        self.assertEqual(artifact.resolution, 700)

    def test_trim_applies_to_each_attempt(self):
        trimmer = ShrinkingTrimmer(shrink=100)
        pipeline = self.make({1600: 6 * MB, 1200: 3 * MB}, trimmer=trimmer)
        
        artifact = pipeline.render(42, budget=5 * MB, start_resolution=1600)
        
        self.assertEqual(trimmer.calls, 2)
        self.assertEqual(artifact.size_in_bytes, 3 * MB - 100)

    def test_trim_failure_falls_back_to_untrimmed(self):
        trimmer = MagicMock()
        trimmer.trim.side_effect = TrimError("convert exploded")
        pipeline = self.make({1600: 2 * MB}, trimmer=trimmer)
        
        artifact = pipeline.render(42, budget=5 * MB, start_resolution=1600)
        
        self.assertFalse(artifact.trimmed)
        self.assertEqual(artifact.size_in_bytes, 2 * MB)

    def test_rasterize_failure_is_fatal(self):
        rasterizer = MagicMock()
        rasterizer.rasterize.side_effect = RenderError("pdftoppm missing")
        pipeline = RenderPipeline(self.exporter, rasterizer, ShrinkingTrimmer())
        
        with self.assertRaises(RenderError):
            pipeline.render(42, budget=5 * MB, start_resolution=1600)

    def test_export_failure_propagates(self):
        self.exporter.export_pdf.side_effect = RemoteServiceError("export", "HTTP 403")
        pipeline = self.make({1600: 1})
        
        with self.assertRaises(RemoteServiceError):
            pipeline.render(42, budget=5 * MB, start_resolution=1600)
        self.assertEqual(self.rasterizer.calls, [])


if __name__ == "__main__":
    unittest.main()
