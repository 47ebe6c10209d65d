#!/usr/bin/env python3
"""
SheetSnap Configuration Script

Quick setup for service-account credentials.
Usage:
    python configure.py                                   # Interactive mode
    python configure.py --credentials service_account.json
    python configure.py --credentials sa.json --webhook URL --force
"""

import argparse
import base64
import re
import sys
from pathlib import Path
from typing import Dict

from sheetsnap.errors import ConfigError
from sheetsnap.services.sheets import load_service_account_info


def encode_credentials(credentials_path: Path) -> str:
    """
    Read a service-account JSON key and return it base64-encoded.
    
    Raises:
        ConfigError: If the file is missing or not a service-account key
    """
    if not credentials_path.is_file():
        raise ConfigError(f"Credentials file not found: {credentials_path}")
    
    encoded = base64.b64encode(credentials_path.read_bytes()).decode("ascii")
    
    # Validate before writing anything
    load_service_account_info(encoded)
    return encoded


def update_env_text(content: str, values: Dict[str, str]) -> str:
    """
    Set KEY=value lines in .env text, replacing existing keys in place and
    appending new ones.
    """
    for key, value in values.items():
        line = f"{key}={value}"
        pattern = rf'^{re.escape(key)}=.*$'
        content, count = re.subn(pattern, lambda _: line, content, count=1, flags=re.MULTILINE)
        if count == 0:
            if content and not content.endswith("\n"):
                content += "\n"
            content += line + "\n"
    return content


def setup_env_file(values: Dict[str, str], force: bool = False, root_dir: Path = None) -> bool:
    """
    Create or update .env file with the given variables.
    
    Args:
        values: Variables to set (e.g. {"SA_JSON_BASE64": ...})
        force: Update an existing .env file without asking
        root_dir: Directory holding .env (defaults to this script's directory)
    
    Returns:
        True if successful
    """
    root_dir = root_dir or Path(__file__).parent
    env_file = root_dir / ".env"
    env_example = root_dir / ".env.example"
    
    if env_file.exists():
        if not force:
            print(f"⚠️  .env file already exists at {env_file}")
            response = input("Update it? [y/N]: ").strip().lower()
            if response != 'y':
                print("❌ Setup cancelled.")
                return False
        content = env_file.read_text()
    elif env_example.exists():
        content = env_example.read_text()
    else:
        content = ""
    
    env_file.write_text(update_env_text(content, values))
    print(f"✅ Wrote {', '.join(values)} to {env_file}")
    
    return True


def interactive_setup() -> bool:
    """Interactive setup mode."""
    print("=" * 60)
    print("SheetSnap Setup - Service Account Configuration")
    print("=" * 60)
    print()
    print("Create a service-account key in the Google Cloud Console and")
    print("share the spreadsheet with the service account's email address.")
    print()
    
    path = input("Path to service-account JSON: ").strip()
    if not path:
        print("❌ Error: Path cannot be empty")
        return False
    
    webhook = input("Webhook URL (blank to skip): ").strip()
    
    print()
    return configure(Path(path), webhook or None)


def configure(credentials_path: Path, webhook_url: str = None, force: bool = False) -> bool:
    try:
        values = {"SA_JSON_BASE64": encode_credentials(credentials_path)}
    except ConfigError as e:
        print(f"❌ Error: {e}")
        return False
    
    if webhook_url:
        values["SEA_URL"] = webhook_url
    return setup_env_file(values, force=force)


def main():
    parser = argparse.ArgumentParser(
        description="SheetSnap Setup - Configure service-account credentials",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python configure.py                                        # Interactive mode
  python configure.py --credentials sa.json                  # Direct mode
  python configure.py --credentials sa.json --force          # Update existing .env
  python configure.py --credentials sa.json --webhook URL    # Also set SEA_URL
        """
    )
    
    parser.add_argument(
        "--credentials",
        type=Path,
        help="Service-account JSON key file"
    )
    
    parser.add_argument(
        "--webhook",
        type=str,
        help="Webhook URL to store as SEA_URL"
    )
    
    parser.add_argument(
        "--force",
        action="store_true",
        help="Update existing .env file without asking"
    )
    
    args = parser.parse_args()
    
    # Direct mode with --credentials
    if args.credentials:
        success = configure(args.credentials, args.webhook, force=args.force)
        sys.exit(0 if success else 1)
    
    # Interactive mode
    success = interactive_setup()
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
