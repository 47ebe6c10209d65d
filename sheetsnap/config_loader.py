"""
SheetSnap Defaults

Reads sheetsnap/config/settings.yaml (or the file named by $SHEETSNAP_CONFIG)
and exposes it through the module-level `config` object.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_CONFIG_FILE = Path(__file__).parent / "config" / "settings.yaml"
CONFIG_ENV_VAR = "SHEETSNAP_CONFIG"


class Config:
    """
    Process-wide YAML defaults.

    Only one instance exists; every module imports `config` and reads values
    with dotted paths such as 'render.min_resolution'.
    """

    _instance = None
    _data: Optional[Dict[str, Any]] = None
    source: Optional[Path] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if self._data is None:
            self.reload()

    def reload(self, path: Optional[Path] = None) -> None:
        """
        (Re)load defaults from `path`, $SHEETSNAP_CONFIG or the bundled file.

        Raises:
            FileNotFoundError: If the chosen file does not exist
        """
        source = Path(path or os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_FILE)
        if not source.is_file():
            raise FileNotFoundError(f"Configuration file not found: {source}")

        with open(source, 'r') as f:
            self._data = yaml.safe_load(f) or {}
        self.source = source

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Look up a dotted path, e.g. config.get('webhook.timeout', 60).

        Missing keys (or a path through a non-mapping) give `default`.
        """
        node: Any = self._data
        for key in key_path.split('.'):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def get_section(self, section: str) -> Dict[str, Any]:
        """Top-level section as a dict ({} if absent or empty)."""
        return self._data.get(section) or {}


config = Config()
