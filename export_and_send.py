#!/usr/bin/env python3
"""
SheetSnap CLI Entry Point

Usage:
    python export_and_send.py                  # Settings from env / .env
    python export_and_send.py --range B3:D20   # Override the range
    python export_and_send.py --help           # Show all options

Runs one export: duplicate the tab, crop it to the range, render it to a
PNG under MAX_BYTES_MB, post it to SEA_URL and delete the temporary tab.

First time setup:
    1. Store credentials:   python configure.py --credentials sa.json
    2. Fill in .env:         SHEET_ID, GID, RANGE_A1, SEA_URL
    3. Test the export:      python export_and_send.py --keep-files out/
"""

import sys

from sheetsnap.cli import run

if __name__ == "__main__":
    print("\n" + "="*60)
    print("SheetSnap - Spreadsheet Range Reporter")
    print("="*60 + "\n")
    
    sys.exit(run())
