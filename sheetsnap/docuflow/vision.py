"""
DocuFlow Vision Module

Handles PDF rasterization and image cleanup:
- First page of a PDF -> PNG, scaled so the long edge hits a target size
- Tolerance-based trimming of uniform background borders

Functions take and return encoded PNG bytes so callers can measure the
exact size that will be delivered.
"""

import io
import logging
from typing import Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

try:
    from pdf2image import convert_from_bytes
    from pdf2image.exceptions import (
        PDFInfoNotInstalledError,
        PDFPageCountError,
        PDFSyntaxError,
    )
except ImportError:
    raise ImportError(
        "pdf2image requires poppler to be installed.\n"
        "Install with: brew install poppler (macOS) or apt-get install poppler-utils (Linux)"
    )

from ..config_loader import config
from ..errors import RenderError, TrimError

logger = logging.getLogger(__name__)


def encode_png(img: Image.Image) -> bytes:
    """Encode a PIL image as optimized PNG bytes."""
    output = io.BytesIO()
    img.save(output, format="PNG", optimize=True)
    return output.getvalue()


class PDFRasterizer:
    """
    Converts the first page of a PDF into a PNG via poppler (pdftoppm).
    """
    
    def __init__(self, poppler_path: Optional[str] = None):
        self.poppler_path = poppler_path or config.get('render.poppler_path')
    
    def rasterize(self, pdf_bytes: bytes, resolution: int) -> bytes:
        """
        Render page one of `pdf_bytes`.
        
        Args:
            pdf_bytes: Raw PDF document
            resolution: Target size in pixels of the image's long edge
            
        Returns:
            PNG bytes
            
        Raises:
            RenderError: If poppler is missing or the PDF cannot be rendered
        """
        try:
            images = convert_from_bytes(
                pdf_bytes,
                size=int(resolution),
                first_page=1,
                last_page=1,
                fmt="png",
                poppler_path=self.poppler_path
            )
        except (PDFInfoNotInstalledError, PDFPageCountError, PDFSyntaxError) as e:
            raise RenderError(f"Could not rasterize PDF: {e}") from e
        except (OSError, ValueError) as e:
            raise RenderError(f"Rasterizer failed: {e}") from e
        
        if not images:
            raise RenderError("PDF conversion produced no images")
        
        img = images[0]
        logger.debug(f"Rasterized page 1 at {resolution}px: {img.size}")
        return encode_png(img)


class WhitespaceTrimmer:
    """
    Removes border pixels matching the background colour.
    
    The background is the top-left pixel's colour; a pixel counts as
    background when every channel is within `fuzz_percent` of it.
    """
    
    def __init__(self, fuzz_percent: Optional[float] = None):
        if fuzz_percent is None:
            fuzz_percent = config.get('render.trim_fuzz_percent', 4)
        self.fuzz_percent = float(fuzz_percent)
    
    def trim(self, png_bytes: bytes) -> bytes:
        """
        Trim uniform background from the image borders.
        
        Args:
            png_bytes: Encoded image
            
        Returns:
            PNG bytes of the trimmed image
            
        Raises:
            TrimError: If the image cannot be decoded or has no content
        """
        try:
            with Image.open(io.BytesIO(png_bytes)) as src:
                img = src.convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise TrimError(f"Cannot decode image for trimming: {e}") from e
        
        bbox = self._content_bbox(img)
        if bbox is None:
            raise TrimError("Image is uniform background, nothing to keep")
        
        if bbox == (0, 0, img.width, img.height):
            logger.debug("No border to trim")
            return encode_png(img)
        
        cropped = img.crop(bbox)
        logger.debug(f"Trimmed {img.size} -> {cropped.size}")
        return encode_png(cropped)
    
    def _content_bbox(self, img: Image.Image):
        """
        Bounding box (left, top, right, bottom) of non-background pixels,
        or None when the whole image is background.
        """
        img_array = np.asarray(img, dtype=np.int16)
        background = img_array[0, 0, :]
        
        threshold = 255 * self.fuzz_percent / 100.0
        content = np.abs(img_array - background).max(axis=2) > threshold
        
        rows = np.flatnonzero(content.any(axis=1))
        cols = np.flatnonzero(content.any(axis=0))
        if rows.size == 0 or cols.size == 0:
            return None
        
        return (int(cols[0]), int(rows[0]), int(cols[-1]) + 1, int(rows[-1]) + 1)
