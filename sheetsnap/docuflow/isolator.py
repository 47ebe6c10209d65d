"""
DocuFlow Region Isolator

Isolates a rectangle of a tab without touching the source:
1. Duplicate the tab into a temporary working copy
2. Delete every row and column outside the rectangle (one batched request)
3. Hand back the copy for export

The temporary tab is owned by the caller, who must hand it back to
`RegionIsolator.release()` on every exit path.
"""

import logging
from typing import Callable, List, Optional

from ..config_loader import config
from ..models import (
    Dimension,
    DimensionDeletion,
    GridDimensions,
    Rectangle,
    TempSheetHandle,
    temp_sheet_name,
)

logger = logging.getLogger(__name__)


def compute_deletions(grid: GridDimensions, rect: Rectangle) -> List[DimensionDeletion]:
    """
    Compute the deleteDimension ranges that leave only `rect` on a sheet.
    
    Ranges are 0-indexed and end-exclusive. Empty ranges are skipped. The
    trailing range of each axis comes before the leading one so that, when
    applied sequentially, no deletion shifts the indices of a later one.
    
    Args:
        grid: Full size of the working copy
        rect: Inclusive, 1-indexed rectangle to keep
        
    Returns:
        Ordered list of deletions (0 to 4 entries)
    """
    deletions = []
    
    leading_rows = rect.start_row - 1
    trailing_rows_start = rect.end_row
    leading_cols = rect.start_col - 1
    trailing_cols_start = rect.end_col
    
    if trailing_rows_start < grid.row_count:
        deletions.append(DimensionDeletion(Dimension.ROWS, trailing_rows_start, grid.row_count))
    if leading_rows > 0:
        deletions.append(DimensionDeletion(Dimension.ROWS, 0, leading_rows))
    if trailing_cols_start < grid.col_count:
        deletions.append(DimensionDeletion(Dimension.COLUMNS, trailing_cols_start, grid.col_count))
    if leading_cols > 0:
        deletions.append(DimensionDeletion(Dimension.COLUMNS, 0, leading_cols))
    
    if rect.end_row > grid.row_count or rect.end_col > grid.col_count:
        logger.warning(
            f"Range {rect} extends past the sheet grid "
            f"({grid.row_count}x{grid.col_count}); keeping what exists"
        )
    
    return deletions


class RegionIsolator:
    """
    Produces cropped temporary copies of a source tab.
    
    Works against any service exposing duplicate_sheet / delete_dimensions /
    delete_sheet (see services.sheets.SheetsConnector).
    """
    
    def __init__(self, sheets, insert_index: Optional[int] = None, name_prefix: Optional[str] = None):
        """
        Args:
            sheets: Spreadsheet service adapter
            insert_index: Tab position of the working copy
            name_prefix: Prefix of the working copy's title
        """
        self.sheets = sheets
        self.insert_index = (
            insert_index if insert_index is not None
            else config.get('export.temp_sheet_index', 0)
        )
        self.name_prefix = name_prefix or config.get('export.temp_sheet_prefix', 'tmp_export_')
    
    def duplicate(self, source_sheet_id: int) -> TempSheetHandle:
        """Create the uncropped working copy of `source_sheet_id`."""
        return self.sheets.duplicate_sheet(
            source_sheet_id,
            temp_sheet_name(self.name_prefix),
            self.insert_index
        )
    
    def crop(self, handle: TempSheetHandle, rect: Rectangle) -> List[DimensionDeletion]:
        """
        Delete everything outside `rect` from the working copy.
        
        Returns:
            The deletions that were submitted (possibly none)
        """
        deletions = compute_deletions(handle.grid, rect)
        logger.info(f"Cropping tab {handle.sheet_id} with {len(deletions)} deletion(s)")
        self.sheets.delete_dimensions(handle.sheet_id, deletions)
        return deletions
    
    def isolate(
        self,
        source_sheet_id: int,
        rect: Rectangle,
        on_created: Optional[Callable[[TempSheetHandle], None]] = None
    ) -> TempSheetHandle:
        """
        Duplicate `source_sheet_id` and crop the copy down to `rect`.
        
        Args:
            source_sheet_id: Tab to copy
            rect: Rectangle to keep
            on_created: Called with the handle right after duplication. The
                callback's owner then releases the copy on every exit path,
                including a failed crop. Without it, a failed crop releases
                the copy here before the error propagates.
        
        Returns:
            Handle of the cropped copy; its sheet_id is what gets exported
            
        Raises:
            RemoteServiceError: If duplication or cropping fails
        """
        handle = self.duplicate(source_sheet_id)
        if on_created is not None:
            on_created(handle)
            self.crop(handle, rect)
            return handle
        
        try:
            self.crop(handle, rect)
        except Exception:
            logger.error(f"Crop failed, removing temp tab {handle.sheet_id}")
            self.release(handle)
            raise
        
        return handle
    
    def release(self, handle: TempSheetHandle) -> bool:
        """
        Delete a working copy. Failures of any kind are logged, never raised.
        
        Returns:
            True if the tab was deleted
        """
        try:
            self.sheets.delete_sheet(handle.sheet_id)
            return True
        except Exception as e:
            logger.warning(f"Could not delete temp tab {handle.sheet_id}: {type(e).__name__}: {e}")
            return False
