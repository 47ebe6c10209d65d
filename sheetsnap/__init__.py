"""
SheetSnap - Spreadsheet range to chat-webhook image reporter

Exports a rectangular range of a Google Sheets tab as a trimmed PNG that
fits a byte budget, and posts it (optionally preceded by the range's text)
to a chat webhook. One export per invocation.
"""

__version__ = "0.1.0"

__all__ = ['main', 'settings', 'docuflow', 'services']
