"""Application settings."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from pathlib import Path
from typing import Optional


_DEFAULT_LOG_LEVEL = "WARNING"
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def default_config_path() -> Path:
    return Path.home() / ".config" / "animatch" / "settings.json"


def default_catalog_path() -> Path:
    return Path.home() / ".local" / "share" / "animatch" / "catalog.db"


@dataclass(frozen=True)
class Settings:
    catalog_db: Path
    log_level: str = _DEFAULT_LOG_LEVEL

    @property
    def log_level_number(self) -> int:
        return logging.getLevelName(self.log_level)


def load_settings(path: Optional[Path]) -> Settings:
    """Load settings from JSON config file, with environment variable overrides.

    Priority order:
    1. Environment variables
    2. JSON config file
    3. Defaults

    Args:
        path: Path to JSON config file, or None to use defaults only

    Returns:
        Settings object with resolved values
    """
    json_settings = {}
    if path and path.exists():
        json_settings = json.loads(path.read_text())

    catalog_db = os.getenv("ANIMATCH_CATALOG_DB") or json_settings.get("catalog_db")
    catalog_path = Path(catalog_db).expanduser() if catalog_db else default_catalog_path()

    log_level = os.getenv("ANIMATCH_LOG_LEVEL") or json_settings.get("log_level", _DEFAULT_LOG_LEVEL)
    log_level = str(log_level).upper()
    if log_level not in _ALLOWED_LOG_LEVELS:
        raise ValueError(f"Unsupported log level: {log_level}")

    return Settings(catalog_db=catalog_path, log_level=log_level)
