"""
SheetSnap Main Orchestrator

Coordinates one export run:
1. Parse the A1 range
2. Isolate it on a temporary copy of the tab
3. Export, rasterize and trim it under the size budget
4. Deliver optional text and the image to the webhook
5. Delete the temporary tab (on every exit path once it exists)

"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import SheetSnapError
from .models import RenderedArtifact, RunState, TempSheetHandle
from .settings import ExportSettings
from .docuflow.parser import parse_a1_range, split_sheet_prefix
from .docuflow.isolator import RegionIsolator, compute_deletions
from .docuflow.renderer import RenderPipeline
from .docuflow.vision import PDFRasterizer, WhitespaceTrimmer
from .services.sheets import SheetsConnector, load_service_account_info
from .services.webhook import WebhookClient, format_rows_as_text

logger = logging.getLogger(__name__)

# States from which a failure goes through Aborting
ABORTABLE_STATES = {RunState.ISOLATING, RunState.RENDERING, RunState.DELIVERING}


class SheetSnapPipeline:
    """
    Single-run export orchestrator.
    
    Services are built from settings on first use; tests inject fakes.
    """
    
    def __init__(
        self,
        settings: ExportSettings,
        sheets=None,
        webhook: Optional[WebhookClient] = None,
        rasterizer=None,
        trimmer=None,
        keep_dir: Optional[str] = None
    ):
        """
        Initialize pipeline.
        
        Args:
            settings: Merged run settings
            sheets: Spreadsheet service (defaults to SheetsConnector)
            webhook: Delivery client (defaults to WebhookClient)
            rasterizer: PDF rasterizer (defaults to PDFRasterizer)
            trimmer: Image trimmer (defaults to WhitespaceTrimmer)
            keep_dir: If set, write the exported PDF and final image here
        """
        self.settings = settings
        self.sheets = sheets
        self.webhook = webhook
        self.rasterizer = rasterizer
        self.trimmer = trimmer
        self.keep_dir = Path(keep_dir) if keep_dir else None
        self.isolator: Optional[RegionIsolator] = None
        self.temp_handle: Optional[TempSheetHandle] = None
        
        self.state = RunState.IDLE
        self.state_history: List[RunState] = [RunState.IDLE]
    
    def _transition(self, state: RunState) -> None:
        logger.debug(f"State: {self.state.value} -> {state.value}")
        self.state = state
        self.state_history.append(state)
    
    def _init_services(self) -> None:
        """Build any service that was not injected."""
        if self.sheets is None and self.settings.needs_spreadsheet:
            self.sheets = SheetsConnector(
                spreadsheet_id=self.settings.sheet_id,
                credentials_info=load_service_account_info(self.settings.sa_json_base64)
            )
        if self.webhook is None:
            self.webhook = WebhookClient(self.settings.webhook_url)
        if self.rasterizer is None:
            self.rasterizer = PDFRasterizer()
        if self.trimmer is None:
            self.trimmer = WhitespaceTrimmer()
        if self.sheets is not None:
            self.isolator = RegionIsolator(self.sheets)
    
    def run(self) -> Dict[str, Any]:
        """
        Execute the export.
        
        Returns:
            Dict with execution summary; summary["success"] drives the exit code
        """
        logger.info("="*60)
        logger.info("Starting SheetSnap export")
        logger.info("="*60)
        
        summary: Dict[str, Any] = {"success": False}
        self.temp_handle = None
        
        try:
            self.settings.require()
            self._init_services()
            
            if self.settings.local_image:
                logger.info(f"Bypassing render, sending local image {self.settings.local_image}")
                artifact = self._load_local_image()
            else:
                # Step 1: Parse range
                self._transition(RunState.PARSING_RANGE)
                rect = parse_a1_range(self.settings.range_a1)
                logger.info(f"Parsed range {self.settings.range_a1}: {rect}")
                summary["range"] = self.settings.range_a1
                
                # Step 2: Isolate region on a temp tab
                self._transition(RunState.ISOLATING)
                handle = self.isolator.isolate(self.settings.gid, rect, on_created=self._adopt)
                summary["deletions"] = len(compute_deletions(handle.grid, rect))
                logger.info("Cropping done")
                
                # Step 3: Export + render
                self._transition(RunState.RENDERING)
                renderer = RenderPipeline(
                    exporter=self.sheets,
                    rasterizer=self.rasterizer,
                    trimmer=self.trimmer,
                    options=self.settings.export_options()
                )
                artifact = renderer.render(
                    handle.sheet_id,
                    self.settings.max_bytes,
                    self.settings.start_resolution
                )
                self._keep_files(renderer.last_document, artifact)
            
            summary["image_bytes"] = artifact.size_in_bytes
            summary["resolution"] = artifact.resolution
            summary["trimmed"] = artifact.trimmed
            
            # Step 4: Deliver (text first, best-effort)
            self._transition(RunState.DELIVERING)
            summary["text_sent"] = self._send_text()
            result = self.webhook.send_file(self.settings.output_name, artifact.data)
            summary["webhook_status"] = result.status_code
            
            summary["success"] = True
            
        except SheetSnapError as e:
            self._fail(summary, e)
            logger.error(f"Export failed: {type(e).__name__}: {e}")
            
        except Exception as e:
            self._fail(summary, e)
            logger.error(f"Export failed with unexpected error: {e}", exc_info=True)
            
        finally:
            # Step 5: Cleanup
            if self.temp_handle is not None:
                self._transition(RunState.CLEANING_UP)
                summary["temp_sheet_id"] = self.temp_handle.sheet_id
                summary["temp_sheet_deleted"] = self.isolator.release(self.temp_handle)
            
            self._transition(RunState.DONE if summary["success"] else RunState.FAILED)
            summary["state"] = self.state.value
        
        logger.info("="*60)
        logger.info(f"Export {'complete' if summary['success'] else 'FAILED'}")
        logger.info("="*60)
        logger.info(f"Summary: {summary}")
        
        return summary
    
    def _adopt(self, handle: TempSheetHandle) -> None:
        """Take ownership of a new temp tab; it is released in run()'s finally."""
        self.temp_handle = handle
    
    def _fail(self, summary: Dict[str, Any], error: Exception) -> None:
        if self.state in ABORTABLE_STATES:
            self._transition(RunState.ABORTING)
        summary["success"] = False
        summary["error"] = f"{type(error).__name__}: {error}"
    
    def _load_local_image(self) -> RenderedArtifact:
        data = Path(self.settings.local_image).read_bytes()
        if len(data) > self.settings.max_bytes:
            logger.warning(
                f"Local image is {len(data)} bytes, over the {self.settings.max_bytes} byte budget"
            )
        return RenderedArtifact(data=data, resolution=0)
    
    def _send_text(self) -> bool:
        """
        Extract the text range from the source tab and send it.
        
        Every failure is logged and reported as False.
        """
        if not self.settings.text_range_a1:
            return False
        
        try:
            _, rng = split_sheet_prefix(self.settings.text_range_a1)
            parse_a1_range(rng)
            rows = self.sheets.read_values(self.settings.gid, rng)
        except Exception as e:
            logger.warning(f"[Non-Fatal] Text extraction failed: {type(e).__name__}: {e}")
            return False
        
        text = format_rows_as_text(rows, header=self.settings.text_header)
        return self.webhook.send_text(text)
    
    def _keep_files(self, pdf_bytes: Optional[bytes], artifact: RenderedArtifact) -> None:
        """Write debug copies of the PDF and image when --keep-files is set."""
        if not self.keep_dir:
            return
        
        try:
            self.keep_dir.mkdir(parents=True, exist_ok=True)
            if pdf_bytes:
                (self.keep_dir / "report.pdf").write_bytes(pdf_bytes)
            (self.keep_dir / self.settings.output_name).write_bytes(artifact.data)
            logger.info(f"Saved debug files to {self.keep_dir}")
        except OSError as e:
            logger.warning(f"Failed to save debug files: {e}")


def main(
    overrides: Optional[Dict[str, Any]] = None,
    keep_dir: Optional[str] = None,
    env_file: Optional[str] = None
) -> Dict[str, Any]:
    """
    Main entry point for one SheetSnap export.
    
    Args:
        overrides: Settings that win over YAML and environment values
        keep_dir: Directory for debug copies of the PDF and image
        env_file: Optional .env path
        
    Returns:
        Execution summary dict
    """
    try:
        settings = ExportSettings.from_sources(overrides=overrides, env_file=env_file)
    except SheetSnapError as e:
        logger.error(f"Export failed: {type(e).__name__}: {e}")
        return {"success": False, "state": RunState.FAILED.value, "error": f"{type(e).__name__}: {e}"}
    
    pipeline = SheetSnapPipeline(settings, keep_dir=keep_dir)
    return pipeline.run()


if __name__ == "__main__":
    import sys
    from .logging_config import setup_logging
    
    setup_logging()
    summary = main()
    
    sys.exit(0 if summary.get("success") else 1)
