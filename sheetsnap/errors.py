"""
SheetSnap Error Taxonomy

Every failure the pipeline can report derives from SheetSnapError so the
orchestrator can map it to a failed run without catching unrelated bugs.
"""

from typing import Optional


class SheetSnapError(Exception):
    """Base class for expected pipeline failures."""


class ConfigError(SheetSnapError):
    """Required configuration is missing or invalid."""


class ParseError(SheetSnapError, ValueError):
    """Malformed A1 range text."""


class RemoteServiceError(SheetSnapError):
    """A spreadsheet-service call failed."""
    
    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class RenderError(SheetSnapError):
    """The document could not be rasterized."""


class TrimError(RenderError):
    """Whitespace trimming failed (recovered by the render pipeline)."""


class DeliveryError(SheetSnapError):
    """A webhook message could not be delivered."""
    
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
