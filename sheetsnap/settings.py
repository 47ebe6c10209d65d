"""
Run Settings

Merges the three configuration layers into one validated object:
1. settings.yaml defaults (config_loader)
2. Environment variables, optionally from a .env file
3. Explicit overrides (CLI flags)
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .config_loader import config
from .errors import ConfigError
from .models import ExportOptions

logger = logging.getLogger(__name__)


# Field name -> environment variable
ENV_VARS = {
    "sa_json_base64": "SA_JSON_BASE64",
    "sheet_id": "SHEET_ID",
    "gid": "GID",
    "range_a1": "RANGE_A1",
    "webhook_url": "SEA_URL",
    "output_name": "PNG_NAME",
    "paper_size": "PAPER_SIZE",
    "portrait": "PORTRAIT",
    "fit_to_width": "FITW",
    "gridlines": "GRIDLINES",
    "margin_inch": "MARGIN_INCH",
    "max_bytes_mb": "MAX_BYTES_MB",
    "start_resolution": "SCALE_TO_PX",
    "local_image": "LOCAL_IMAGE",
    "text_range_a1": "TEXT_RANGE_A1",
    "text_header": "TEXT_HEADER",
}


class ExportSettings(BaseModel):
    """Validated settings for one export run."""
    
    sa_json_base64: Optional[str] = None
    sheet_id: Optional[str] = None
    gid: Optional[int] = None
    range_a1: Optional[str] = None
    webhook_url: Optional[str] = None
    
    output_name: str = "Report.png"
    paper_size: str = "letter"
    portrait: bool = True
    fit_to_width: bool = True
    gridlines: bool = False
    margin_inch: float = Field(default=0.0, ge=0)
    
    max_bytes_mb: float = Field(default=5, gt=0)
    start_resolution: int = Field(default=1600, gt=0)
    
    local_image: Optional[str] = None
    text_range_a1: Optional[str] = None
    text_header: Optional[str] = None
    
    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Treat empty strings (unset env vars in CI) as missing."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v
    
    @property
    def max_bytes(self) -> int:
        """Size budget in bytes."""
        return int(self.max_bytes_mb * 1024 * 1024)
    
    @property
    def needs_spreadsheet(self) -> bool:
        """False when a local image is sent and no text is extracted."""
        return not self.local_image or bool(self.text_range_a1)
    
    def export_options(self) -> ExportOptions:
        return ExportOptions(
            paper_size=self.paper_size,
            portrait=self.portrait,
            fit_to_width=self.fit_to_width,
            gridlines=self.gridlines,
            margin_inch=self.margin_inch
        )
    
    def missing_fields(self) -> List[str]:
        """Environment names of required settings that are unset."""
        required = []
        if self.needs_spreadsheet:
            required += ["sa_json_base64", "sheet_id", "gid"]
        if not self.local_image:
            required.append("range_a1")
        required.append("webhook_url")
        return [ENV_VARS[name] for name in required if getattr(self, name) in (None, "")]
    
    def require(self) -> "ExportSettings":
        """
        Check required settings.
        
        Raises:
            ConfigError: Listing every missing variable, or a missing local image
        """
        missing = self.missing_fields()
        if missing:
            raise ConfigError(f"Missing env: {', '.join(missing)}")
        
        if self.local_image and not Path(self.local_image).is_file():
            raise ConfigError(f"LOCAL_IMAGE not found: {self.local_image}")
        return self
    
    @classmethod
    def from_sources(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        overrides: Optional[Dict[str, Any]] = None,
        env_file: Optional[str] = None
    ) -> "ExportSettings":
        """
        Build settings from YAML defaults, the environment and overrides.
        
        Args:
            environ: Environment mapping (defaults to os.environ after loading .env)
            overrides: Field values that win over everything else (None values ignored)
            env_file: Path of a .env file to load into os.environ
            
        Raises:
            ConfigError: If a value cannot be parsed
        """
        if environ is None:
            load_dotenv(dotenv_path=env_file, override=False)
            environ = os.environ
        
        values: Dict[str, Any] = {
            "output_name": config.get('export.output_name'),
            "paper_size": config.get('export.paper_size'),
            "portrait": config.get('export.portrait'),
            "fit_to_width": config.get('export.fit_to_width'),
            "gridlines": config.get('export.gridlines'),
            "margin_inch": config.get('export.margin_inch'),
            "max_bytes_mb": config.get('render.max_bytes_mb'),
            "start_resolution": config.get('render.start_resolution'),
        }
        values = {k: v for k, v in values.items() if v is not None}
        
        for field_name, env_name in ENV_VARS.items():
            raw = environ.get(env_name)
            if raw is not None and raw.strip():
                values[field_name] = raw
        
        for field_name, value in (overrides or {}).items():
            if value is not None:
                values[field_name] = value
        
        try:
            settings = cls(**values)
        except ValidationError as e:
            problems = "; ".join(
                f"{ENV_VARS.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
                for err in e.errors()
            )
            raise ConfigError(f"Invalid configuration: {problems}") from e
        
        logger.debug(
            f"Settings loaded: sheet={settings.sheet_id} gid={settings.gid} "
            f"range={settings.range_a1} max_bytes={settings.max_bytes}"
        )
        return settings
