"""
DocuFlow Render Pipeline

Turns an isolated tab into a PNG under a byte budget:
1. Export the tab as a single-page, fit-to-width PDF (once)
2. Rasterize page one at the start resolution, then trim it
3. If the result is over budget, rasterize once more at a reduced
   resolution: max(floor(r * shrink_factor), min_resolution)

Only one retry is made; if both attempts are oversized the smaller one is
accepted with a warning.
"""

import logging
import math
from typing import Optional

from ..config_loader import config
from ..errors import TrimError
from ..models import ExportOptions, RenderedArtifact

logger = logging.getLogger(__name__)


def reduced_resolution(resolution: int, shrink_factor: float, min_resolution: int) -> int:
    """Resolution for the retry pass."""
    return max(int(math.floor(resolution * shrink_factor)), min_resolution)


class RenderPipeline:
    """
    Export -> rasterize -> trim with a single size-driven retry.
    
    Collaborators are injected so the pipeline can run against fakes:
    - exporter: object with export_pdf(sheet_id, options) -> bytes
    - rasterizer: object with rasterize(pdf_bytes, resolution) -> bytes
    - trimmer: object with trim(png_bytes) -> bytes (may raise TrimError)
    """
    
    def __init__(
        self,
        exporter,
        rasterizer,
        trimmer,
        options: Optional[ExportOptions] = None,
        shrink_factor: Optional[float] = None,
        min_resolution: Optional[int] = None
    ):
        self.exporter = exporter
        self.rasterizer = rasterizer
        self.trimmer = trimmer
        self.options = options or ExportOptions()
        self.shrink_factor = (
            shrink_factor if shrink_factor is not None
            else config.get('render.shrink_factor', 0.75)
        )
        self.min_resolution = (
            min_resolution if min_resolution is not None
            else config.get('render.min_resolution', 800)
        )
        
        # Last exported PDF, kept for --keep-files debugging
        self.last_document: Optional[bytes] = None
    
    def render(self, sheet_id: int, budget: int, start_resolution: int) -> RenderedArtifact:
        """
        Export `sheet_id` and render it under `budget` bytes if possible.
        
        Args:
            sheet_id: Tab to export (normally the cropped temp tab)
            budget: Maximum artifact size in bytes
            start_resolution: Long-edge pixel size of the first attempt
            
        Returns:
            The first attempt if it fits, otherwise the retry (or whichever
            of the two is smaller when both exceed the budget)
            
        Raises:
            RemoteServiceError: If the export fails
            RenderError: If rasterization fails
        """
        pdf_bytes = self.exporter.export_pdf(sheet_id, self.options)
        self.last_document = pdf_bytes
        return self.render_document(pdf_bytes, budget, start_resolution)
    
    def render_document(self, pdf_bytes: bytes, budget: int, start_resolution: int) -> RenderedArtifact:
        """Rasterization half of render(), for an already exported PDF."""
        first = self._attempt(pdf_bytes, start_resolution)
        if first.size_in_bytes <= budget:
            return first
        
        retry_resolution = reduced_resolution(start_resolution, self.shrink_factor, self.min_resolution)
        if retry_resolution >= start_resolution:
            logger.warning(
                f"Image is {first.size_in_bytes} bytes (budget {budget}) but "
                f"{start_resolution}px is already at the {self.min_resolution}px floor"
            )
            return first
        
        logger.info(
            f"Image too big ({first.size_in_bytes} > {budget} bytes); "
            f"retrying at {retry_resolution}px"
        )
        second = self._attempt(pdf_bytes, retry_resolution)
        
        if second.size_in_bytes > budget:
            logger.warning(
                f"Retry still over budget ({second.size_in_bytes} > {budget} bytes); "
                "sending the smaller image"
            )
            return min(first, second, key=lambda a: a.size_in_bytes)
        
        return second
    
    def _attempt(self, pdf_bytes: bytes, resolution: int) -> RenderedArtifact:
        """One rasterize + best-effort trim pass."""
        raw = self.rasterizer.rasterize(pdf_bytes, resolution)
        
        try:
            artifact = RenderedArtifact(data=self.trimmer.trim(raw), resolution=resolution, trimmed=True)
        except TrimError as e:
            logger.warning(f"Trim failed at {resolution}px, using untrimmed image: {e}")
            artifact = RenderedArtifact(data=raw, resolution=resolution, trimmed=False)
        
        logger.info(
            f"Rendered {resolution}px: {artifact.size_in_bytes} bytes "
            f"({'trimmed' if artifact.trimmed else 'untrimmed'})"
        )
        return artifact
