"""
Logging Setup for SheetSnap

Root logger gets a stdout handler and, unless disabled, a rotating file
handler under paths.logs. Levels, format and rotation come from the
`logging` section of settings.yaml.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .config_loader import config

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("googleapiclient.discovery_cache", "urllib3", "PIL")


def _level(name: str) -> int:
    return getattr(logging, str(name).upper())


def _console_handler(settings: Dict[str, Any], level_override: Optional[str]) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_level(level_override or settings.get('level', 'INFO')))
    return handler


def _file_handler(settings: Dict[str, Any], filename: Optional[str]) -> logging.Handler:
    logs_dir = Path(config.get('paths.logs', './logs'))
    logs_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        logs_dir / (filename or settings.get('filename', 'sheetsnap.log')),
        maxBytes=settings.get('max_bytes', 10 * 1024 * 1024),
        backupCount=settings.get('backup_count', 5)
    )
    handler.setLevel(_level(settings.get('level', 'DEBUG')))
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    file_enabled: Optional[bool] = None
) -> None:
    """
    Configure the root logger for one CLI run.

    Args:
        log_level: Overrides the root and console level (DEBUG, INFO, ...)
        log_file: Overrides the log filename inside paths.logs
        file_enabled: Overrides the YAML switch for the rotating file handler
    """
    section = config.get_section('logging')
    handlers_config = section.get('handlers', {})
    console_config = handlers_config.get('console', {})
    file_config = handlers_config.get('file', {})

    level = log_level or section.get('level', 'INFO')
    formatter = logging.Formatter(
        section.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
        datefmt=section.get('date_format', '%Y-%m-%d %H:%M:%S')
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(_level(level))
    root_logger.handlers.clear()

    handlers = []
    if console_config.get('enabled', True):
        handlers.append(_console_handler(console_config, log_level))
    if file_enabled is None:
        file_enabled = file_config.get('enabled', True)
    if file_enabled:
        handlers.append(_file_handler(file_config, log_file))

    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging ready: level={level} console={console_config.get('enabled', True)} file={file_enabled}"
    )
