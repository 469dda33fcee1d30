from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

SUPPORTED_VERSION = 1

DEFAULT_YOUTUBE_API_URL = "https://www.googleapis.com/youtube/v3/videos"
DEFAULT_METADATA_TIMEOUT_S = 10.0
DEFAULT_MAX_BODY_BYTES = 16 * 1024

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    db_path: Path
    youtube_api_key: str
    youtube_api_url: str = DEFAULT_YOUTUBE_API_URL
    metadata_timeout_s: float = DEFAULT_METADATA_TIMEOUT_S
    supported_version: int = SUPPORTED_VERSION
    log_level: str = "INFO"
    max_body_bytes: int = DEFAULT_MAX_BODY_BYTES
    path: Optional[str] = None


def default_db_path() -> Path:
    base = os.getenv("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return Path(base) / "whatsong" / "videos.db"


def _read_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path or not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"config {path} must be a mapping, got {type(raw).__name__}")
    return raw


def load_settings(path: Optional[str] = None) -> Settings:
    """
    YAML file (optional) -> environment -> defaults.

    The file path comes from `path` or WHATSONG_CONFIG; a missing file is not an error.
    """
    p = path or os.getenv("WHATSONG_CONFIG")
    raw = _read_yaml(p)

    def pick(key: str, env: str, default: Any) -> Any:
        if raw.get(key) is not None:
            return raw[key]
        return os.getenv(env) or default

    return Settings(
        db_path=Path(pick("db_path", "WHATSONG_DB_PATH", default_db_path())),
        youtube_api_key=str(pick("youtube_api_key", "YOUTUBE_API_KEY", "")),
        youtube_api_url=str(pick("youtube_api_url", "WHATSONG_YOUTUBE_API_URL", DEFAULT_YOUTUBE_API_URL)),
        metadata_timeout_s=float(
            pick("metadata_timeout_s", "WHATSONG_METADATA_TIMEOUT_S", DEFAULT_METADATA_TIMEOUT_S)
        ),
        supported_version=SUPPORTED_VERSION,
        log_level=str(pick("log_level", "WHATSONG_LOG_LEVEL", "INFO")).upper(),
        max_body_bytes=int(raw.get("max_body_bytes", DEFAULT_MAX_BODY_BYTES)),
        path=p,
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
