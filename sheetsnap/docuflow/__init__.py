"""
DocuFlow - Range Isolation and Rendering Library

This module provides isolated, testable rendering capabilities:
- Parser: A1 range text to normalized rectangles
- Isolator: Temporary cropped copies of a tab
- Vision: PDF rasterization and whitespace trimming
- Renderer: Size-budgeted export with a single resolution retry

All components talk to the spreadsheet service through injected objects.
"""

__all__ = ['parser', 'isolator', 'vision', 'renderer']
