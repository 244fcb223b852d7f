"""Load client configuration from the environment, .env and config/client.yaml."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from prism.log import get_logger

log = get_logger(__name__)

load_dotenv()

PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = PROJECT_ROOT / "config"
CLIENT_CONFIG_PATH: Path = CONFIG_DIR / "client.yaml"
DATA_DIR: Path = PROJECT_ROOT / "data"

DEFAULT_API_BASE_URL = "https://prism.backend.apexneural.cloud"


@dataclass
class Settings:
    api_base_url: str = DEFAULT_API_BASE_URL
    session_file: Path = DATA_DIR / "session.json"
    http_timeout: float | None = None
    strict_status: bool = False


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "t", "y", "yes")


def load_file_config(path: Path | None = None) -> dict[str, Any]:
    """YAML overrides; a missing file is an empty config."""
    path = path or CLIENT_CONFIG_PATH
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        log.warning("Ignoring %s: expected a mapping, got %s", path.name, type(data).__name__)
        return {}
    return data


def load_settings(path: Path | None = None) -> Settings:
    """Defaults < config/client.yaml < environment."""
    file_cfg = load_file_config(path)
    settings = Settings()

    base_url = get_env("PRISM_API_BASE_URL") or file_cfg.get("api_base_url")
    if base_url:
        settings.api_base_url = str(base_url).rstrip("/")

    session_file = get_env("PRISM_SESSION_FILE") or file_cfg.get("session_file")
    if session_file:
        p = Path(session_file)
        settings.session_file = p if p.is_absolute() else PROJECT_ROOT / p

    timeout = get_env("PRISM_HTTP_TIMEOUT") or file_cfg.get("http_timeout")
    if timeout not in (None, ""):
        try:
            settings.http_timeout = float(timeout)
        except (TypeError, ValueError):
            log.warning("Invalid http timeout %r, requests will not time out", timeout)

    strict = get_env("PRISM_STRICT_STATUS") or file_cfg.get("strict_status")
    if strict not in (None, ""):
        settings.strict_status = _parse_bool(strict)

    return settings
