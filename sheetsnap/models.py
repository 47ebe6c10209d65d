"""
SheetSnap Data Models

Plain data objects passed between the parser, isolator, renderer,
delivery client and orchestrator.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


# ============================================================
# ENUMS
# ============================================================

class Dimension(str, Enum):
    """Sheet axis addressed by a deleteDimension request."""
    ROWS = "ROWS"
    COLUMNS = "COLUMNS"


class RunState(str, Enum):
    """Orchestrator states (one run per process)."""
    IDLE = "Idle"
    PARSING_RANGE = "ParsingRange"
    ISOLATING = "Isolating"
    RENDERING = "Rendering"
    DELIVERING = "Delivering"
    ABORTING = "Aborting"
    CLEANING_UP = "CleaningUp"
    DONE = "Done"
    FAILED = "Failed"


# ============================================================
# GEOMETRY
# ============================================================

@dataclass(frozen=True)
class CellRef:
    """A single 1-indexed cell address."""
    row: int
    col: int


@dataclass(frozen=True)
class Rectangle:
    """
    Inclusive, 1-indexed cell rectangle.
    
    A single cell collapses to start_row == end_row and start_col == end_col.
    """
    start_row: int
    end_row: int
    start_col: int
    end_col: int
    
    def __post_init__(self):
        if self.start_row < 1 or self.start_col < 1:
            raise ValueError(f"Rectangle is 1-indexed, got {self}")
        if self.start_row > self.end_row or self.start_col > self.end_col:
            raise ValueError(f"Rectangle bounds are inverted: {self}")
    
    @property
    def row_count(self) -> int:
        return self.end_row - self.start_row + 1
    
    @property
    def col_count(self) -> int:
        return self.end_col - self.start_col + 1


@dataclass(frozen=True)
class GridDimensions:
    """Full extent of a sheet before cropping."""
    row_count: int
    col_count: int


@dataclass(frozen=True)
class DimensionDeletion:
    """Half-open, 0-indexed index range to delete along one axis."""
    dimension: Dimension
    start_index: int
    end_index: int
    
    def to_request(self, sheet_id: int) -> Dict:
        """Build the Sheets API batchUpdate request body for this deletion."""
        return {
            "deleteDimension": {
                "range": {
                    "sheetId": sheet_id,
                    "dimension": self.dimension.value,
                    "startIndex": self.start_index,
                    "endIndex": self.end_index,
                }
            }
        }


# ============================================================
# PIPELINE OBJECTS
# ============================================================

@dataclass(frozen=True)
class TempSheetHandle:
    """Working copy of a sheet, owned by exactly one pipeline run."""
    sheet_id: int
    title: str
    grid: GridDimensions


@dataclass(frozen=True)
class RenderedArtifact:
    """Encoded raster image produced by one render attempt."""
    data: bytes
    resolution: int
    trimmed: bool = False
    
    @property
    def size_in_bytes(self) -> int:
        return len(self.data)


@dataclass
class ExportOptions:
    """PDF export parameters for the spreadsheet export endpoint."""
    paper_size: str = "letter"
    portrait: bool = True
    fit_to_width: bool = True
    gridlines: bool = False
    margin_inch: float = 0.0
    extra: Dict[str, str] = field(default_factory=dict)
    
    def to_query_params(self) -> Dict[str, str]:
        """Render options as the export endpoint's query parameters."""
        margin = f"{self.margin_inch:g}"
        params = {
            "exportFormat": "pdf",
            "size": self.paper_size,
            "portrait": str(self.portrait).lower(),
            "fitw": str(self.fit_to_width).lower(),
            "gridlines": str(self.gridlines).lower(),
            "fzr": "false",
            "top_margin": margin,
            "bottom_margin": margin,
            "left_margin": margin,
            "right_margin": margin,
        }
        params.update(self.extra)
        return params


def temp_sheet_name(prefix: str = "tmp_export_") -> str:
    """Unique-enough name for a temp sheet (epoch milliseconds suffix)."""
    return f"{prefix}{int(time.time() * 1000)}"
