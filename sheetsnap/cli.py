"""
SheetSnap Command Line

Usage:
    sheetsnap                          # Settings from env / .env
    sheetsnap --range B3:D20           # Override the range
    sheetsnap --local-image chart.png  # Send an existing image
    sheetsnap --help                   # Show all options

Required environment (unless given as flags):
    SA_JSON_BASE64  Base64 service-account JSON (see configure.py)
    SHEET_ID        Spreadsheet ID
    GID             Tab ID
    RANGE_A1        Range to export, e.g. A1:H30
    SEA_URL         Webhook URL

Exit codes: 0 success, 1 failure, 130 interrupted.
"""

import argparse

from .logging_config import setup_logging
from .main import main


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export a spreadsheet range as an image and post it to a webhook",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    
    parser.add_argument("--sheet-id", dest="sheet_id", help="Spreadsheet ID (SHEET_ID)")
    parser.add_argument("--gid", type=int, help="Tab ID to export (GID)")
    parser.add_argument("--range", dest="range_a1", help="A1 range, e.g. B3:D20 (RANGE_A1)")
    parser.add_argument("--webhook", dest="webhook_url", help="Webhook URL (SEA_URL)")
    parser.add_argument("--output-name", dest="output_name", help="Filename shown in chat (PNG_NAME)")
    parser.add_argument("--max-mb", dest="max_bytes_mb", type=float, help="Image size budget in MB (MAX_BYTES_MB)")
    parser.add_argument("--scale", dest="start_resolution", type=int, help="Initial long-edge pixels (SCALE_TO_PX)")
    parser.add_argument("--paper-size", dest="paper_size", help="Export paper size (PAPER_SIZE)")
    parser.add_argument("--margin", dest="margin_inch", type=float, help="Page margins in inches (MARGIN_INCH)")
    parser.add_argument("--local-image", dest="local_image", help="Skip rendering and send this image (LOCAL_IMAGE)")
    parser.add_argument("--text-range", dest="text_range_a1", help="Range sent as a text message first (TEXT_RANGE_A1)")
    parser.add_argument("--text-header", dest="text_header", help="First line of the text message (TEXT_HEADER)")
    parser.add_argument("--env-file", help="Load variables from this .env file")
    parser.add_argument("--keep-files", metavar="DIR", help="Save the exported PDF and final image to DIR")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    
    return parser


OVERRIDE_FIELDS = (
    "sheet_id", "gid", "range_a1", "webhook_url", "output_name",
    "max_bytes_mb", "start_resolution", "paper_size", "margin_inch",
    "local_image", "text_range_a1", "text_header",
)


def run(argv=None) -> int:
    """
    Parse arguments, run one export and print its summary.
    
    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    
    setup_logging(
        log_level=args.log_level,
        file_enabled=False if args.no_log_file else None
    )
    
    overrides = {name: getattr(args, name) for name in OVERRIDE_FIELDS}
    
    try:
        summary = main(overrides=overrides, keep_dir=args.keep_files, env_file=args.env_file)
        
        print("\n" + "="*60)
        print("EXECUTION SUMMARY")
        print("="*60)
        for key, value in summary.items():
            print(f"  {key}: {value}")
        print("="*60 + "\n")
        
        return 0 if summary.get("success") else 1
        
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user")
        return 130
    except Exception as e:
        print(f"\n\nFATAL ERROR: {e}")
        return 1
