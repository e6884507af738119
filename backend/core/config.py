"""Configuration loading utilities for YAML-based application settings."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .logging_config import get_logger


logger = get_logger(__name__)
_BASE_DIR = Path(__file__).resolve().parent.parent
_CONFIG_PATH = _BASE_DIR / "config.yml"


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from YAML configuration file."""

    app_name: str
    debug: bool
    host: str
    port: int
    cors_origins: list[str]
    firebase_enabled: bool
    firebase_project_id: Optional[str]
    firebase_credentials_path: Optional[str]
    firebase_loans_collection: str
    firebase_profiles_collection: str
    penalty_daily_rate_bps: int
    penalty_grace_days: int


def _to_bool(value: Any, default: bool = False) -> bool:
    """Convert value to bool with a default fallback."""
    try:
        if isinstance(value, bool):
            return value
        return value.strip().lower() in {"1", "true", "yes", "on"}
    except (AttributeError, ValueError):
        logger.warning("Invalid boolean value '%s'. Using default=%s", value, default)
        return default


def _to_int(value: Any, default: int) -> int:
    """Convert value to int with a default fallback."""
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid integer value '%s'. Using default=%s", value, default)
        return default


def _to_list(value: Any) -> list[str]:
    """Convert list-like or comma-separated value to list[str]."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return [item.strip() for item in str(value).split(",") if item.strip()]


def _read_config(path: Optional[Path] = None) -> dict:
    """Read and parse YAML configuration."""
    config_path = path or _CONFIG_PATH
    try:
        with config_path.open("r", encoding="utf-8") as config_file:
            config_data = yaml.safe_load(config_file) or {}
        logger.info("Configuration loaded from %s", config_path)
        return config_data
    except FileNotFoundError:
        logger.warning("Config file not found at %s. Falling back to defaults.", config_path)
        return {}
    except yaml.YAMLError:
        logger.exception("Failed to parse config file from %s", config_path)
        return {}


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load and validate application settings from `config.yml`."""
    config = _read_config(path)
    app_cfg = config.get("app", {}) or {}
    firebase_cfg = config.get("firebase", {}) or {}
    penalty_cfg = config.get("penalty", {}) or {}

    return AppSettings(
        app_name=str(app_cfg.get("name", "Loan Servicing API")),
        debug=_to_bool(app_cfg.get("debug", False), False),
        host=str(app_cfg.get("host", "127.0.0.1")),
        port=_to_int(app_cfg.get("port", 8000), 8000),
        cors_origins=_to_list(app_cfg.get("cors_origins", ["http://localhost:3000"])),
        firebase_enabled=_to_bool(firebase_cfg.get("enabled", False), False),
        firebase_project_id=firebase_cfg.get("project_id"),
        firebase_credentials_path=firebase_cfg.get("credentials_path"),
        firebase_loans_collection=str(firebase_cfg.get("loans_collection", "queries")),
        firebase_profiles_collection=str(firebase_cfg.get("profiles_collection", "profiles")),
        penalty_daily_rate_bps=_to_int(penalty_cfg.get("daily_rate_bps", 200), 200),
        penalty_grace_days=_to_int(penalty_cfg.get("grace_days", 3), 3),
    )
