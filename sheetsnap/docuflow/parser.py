"""
DocuFlow Parser Module

Parses spreadsheet A1 notation into normalized rectangles:
- Column letters (bijective base-26, A=1 .. Z=26, AA=27)
- Single cells ("B3") and spans ("B3:D10", in any corner order)
- Optional absolute markers ("$B$3") and sheet prefixes ("Report!B3:D10")

All functions are pure - no spreadsheet service dependencies.
"""

import re
import logging
from typing import Tuple

from ..errors import ParseError
from ..models import CellRef, Rectangle

logger = logging.getLogger(__name__)

CELL_PATTERN = re.compile(r'^([A-Z]+)(\d+)$', re.IGNORECASE)


def column_letters_to_index(letters: str) -> int:
    """
    Decode column letters into a 1-based column number.
    
    Args:
        letters: Column letters, case-insensitive (e.g. 'A', 'z', 'AA')
        
    Returns:
        1-based column index ('A' -> 1, 'Z' -> 26, 'AA' -> 27)
        
    Raises:
        ParseError: If letters is empty or contains non A-Z characters
    """
    if not letters or not letters.isalpha() or not letters.isascii():
        raise ParseError(f"Invalid column letters: {letters!r}")
    
    n = 0
    for ch in letters.upper():
        n = n * 26 + (ord(ch) - ord('A') + 1)
    return n


def parse_cell(token: str) -> CellRef:
    """
    Parse one A1 cell token.
    
    Args:
        token: Cell text such as 'B3' or '$B$3'
        
    Returns:
        CellRef with 1-based row and column
        
    Raises:
        ParseError: If token is not letters followed by digits
    """
    cleaned = token.strip().replace('$', '')
    match = CELL_PATTERN.match(cleaned)
    if not match:
        raise ParseError(f"Invalid cell reference: {token!r}")
    
    row = int(match.group(2))
    if row < 1:
        raise ParseError(f"Row numbers start at 1: {token!r}")
    
    return CellRef(row=row, col=column_letters_to_index(match.group(1)))


def split_sheet_prefix(text: str) -> Tuple[str, str]:
    """
    Split "'My Sheet'!A1:B2" into ("My Sheet", "A1:B2").
    
    The sheet part is empty when the text has no '!' prefix.
    """
    if '!' not in text:
        return "", text
    sheet, rng = text.rsplit('!', 1)
    sheet = sheet.strip()
    if len(sheet) >= 2 and sheet[0] == sheet[-1] == "'":
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, rng


def parse_a1_range(text: str) -> Rectangle:
    """
    Parse A1 range text into an inclusive, 1-indexed Rectangle.
    
    Corners of a span may be given in any order; the rectangle is the
    component-wise min/max of both cells.
    
    Args:
        text: 'C5', 'B3:D10', 'D10:B2' or 'Sheet1!B3:D10'
        
    Returns:
        Normalized Rectangle
        
    Raises:
        ParseError: If any cell token is malformed
    """
    if text is None or not str(text).strip():
        raise ParseError("Range text is empty")
    
    _, rng = split_sheet_prefix(str(text).strip())
    parts = rng.split(':')
    
    if len(parts) == 1:
        cell = parse_cell(parts[0])
        rect = Rectangle(
            start_row=cell.row,
            end_row=cell.row,
            start_col=cell.col,
            end_col=cell.col
        )
    elif len(parts) == 2:
        first, second = parse_cell(parts[0]), parse_cell(parts[1])
        rect = Rectangle(
            start_row=min(first.row, second.row),
            end_row=max(first.row, second.row),
            start_col=min(first.col, second.col),
            end_col=max(first.col, second.col)
        )
    else:
        raise ParseError(f"Too many ':' separators in range: {text!r}")
    
    logger.debug(f"Parsed range {text!r} -> {rect}")
    return rect
