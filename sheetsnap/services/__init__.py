"""
Service Adapters

I/O layer components that wrap external systems:
- Google Sheets API (duplicate, crop, delete, read, PDF export)
- Chat webhook (text and file messages)

These adapters provide clean interfaces and isolate external dependencies.
"""

__all__ = ['sheets', 'webhook']
