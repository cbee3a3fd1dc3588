from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator

from .http import DEFAULT_CLIENT_NAME

ENTUR_URL = "https://api.entur.io/journey-planner/v3/graphql"


class Settings(BaseModel):
    db_url: str = "sqlite:///./data/settings.db"
    entur_url: str = ENTUR_URL
    client_name: str = DEFAULT_CLIENT_NAME
    request_timeout_seconds: int = 20
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()


def _load_yaml(path: Optional[Path]) -> dict:
    if not path:
        return {}
    if not Path(path).exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with Path(path).open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError("Config root must be a mapping")
    return raw


def _env_override(config: dict) -> dict:
    # Environment variables take precedence; prefix RUTER_
    # Supported:
    # RUTER_DB_URL, RUTER_ENTUR_URL, RUTER_CLIENT_NAME,
    # RUTER_REQUEST_TIMEOUT_SECONDS, RUTER_LOG_LEVEL
    out = dict(config)
    for key in ("db_url", "entur_url", "client_name", "log_level"):
        val = os.environ.get(f"RUTER_{key.upper()}")
        if val:
            out[key] = val
    timeout = os.environ.get("RUTER_REQUEST_TIMEOUT_SECONDS")
    if timeout and timeout.isdigit():
        out["request_timeout_seconds"] = int(timeout)
    return out


def load_settings(config_path: Optional[Path] = None) -> Settings:
    base = _load_yaml(config_path)
    merged = _env_override(base)
    return Settings(**merged)
