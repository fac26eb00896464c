from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Dict

import yaml

from expense_tracker.errors import ConfigError

ENVIRONMENTS = ("development", "production", "test")

DEFAULT_CONFIG: Dict[str, object] = {
    "environment": "development",
    "host": "127.0.0.1",
    "port": 5000,
    "db_path": "expense_tracker.db",
    "cors": {
        "origins": [
            "http://localhost:3000",
            "http://localhost:3001",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:3001",
            "http://127.0.0.1:5173",
        ],
        "methods": ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        "allowed_headers": ["Content-Type", "Authorization", "X-Request-ID"],
        "credentials": True,
    },
    "auth": {
        "access_ttl_seconds": 3600,
        "refresh_ttl_seconds": 7 * 24 * 3600,
        "required": False,
    },
    "logging": {
        "level": "DEBUG",
    },
    "features": {
        "stats": True,
        "bulk_delete": True,
    },
}

# Overrides applied per environment before the user's file is merged in.
ENVIRONMENT_DEFAULTS: Dict[str, Dict[str, object]] = {
    "development": {},
    "production": {
        "host": "0.0.0.0",
        "logging": {"level": "INFO"},
        "features": {"bulk_delete": False},
    },
    "test": {
        "port": 5001,
        "cors": {"origins": ["*"]},
        "logging": {"level": "ERROR"},
    },
}

CONFIG_PATH = Path("config.yaml")


def _merge_defaults(current: Dict[str, object], defaults: Dict[str, object]) -> Dict[str, object]:
    """Merge missing default keys into the current config recursively."""
    merged = dict(current)
    for key, value in defaults.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = _merge_defaults(merged[key], value)
    return merged


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env(config: Dict[str, object], environ) -> Dict[str, object]:
    if environ.get("EXPENSE_TRACKER_DB"):
        config["db_path"] = environ["EXPENSE_TRACKER_DB"]
    if environ.get("EXPENSE_TRACKER_HOST"):
        config["host"] = environ["EXPENSE_TRACKER_HOST"]
    if environ.get("EXPENSE_TRACKER_PORT"):
        try:
            config["port"] = int(environ["EXPENSE_TRACKER_PORT"])
        except ValueError as exc:
            raise ConfigError(
                f"EXPENSE_TRACKER_PORT must be an integer: {environ['EXPENSE_TRACKER_PORT']}"
            ) from exc
    if environ.get("EXPENSE_TRACKER_CORS_ORIGIN"):
        origins = [o.strip() for o in environ["EXPENSE_TRACKER_CORS_ORIGIN"].split(",") if o.strip()]
        config["cors"]["origins"] = origins
    if environ.get("EXPENSE_TRACKER_AUTH_REQUIRED"):
        config["auth"]["required"] = _env_flag(environ["EXPENSE_TRACKER_AUTH_REQUIRED"])
    if environ.get("LOG_LEVEL"):
        config["logging"]["level"] = environ["LOG_LEVEL"].upper()
    return config


def load_config(path: Path | str | None = None, environ=None) -> Dict[str, object]:
    """Load ``config.yaml`` (if present) merged over the environment defaults.

    Environment variables win over the file, ``EXPENSE_TRACKER_ENV``
    included: the file's ``environment`` key only applies when it is unset.
    """
    environ = os.environ if environ is None else environ
    target = Path(path) if path else CONFIG_PATH
    data: Dict[str, object] = {}
    if target.exists():
        with target.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{target} must contain a mapping")

    environment = environ.get("EXPENSE_TRACKER_ENV") or data.get("environment") or "development"
    if environment not in ENVIRONMENTS:
        raise ConfigError(
            f"Invalid environment: {environment}. Must be one of {', '.join(ENVIRONMENTS)}"
        )
    data["environment"] = environment

    config = _merge_defaults(data, ENVIRONMENT_DEFAULTS[environment])
    config = _merge_defaults(config, DEFAULT_CONFIG)
    config = _apply_env(config, environ)
    validate_config(config, environ)
    return config


def validate_config(config: Dict[str, object], environ=None) -> None:
    environ = os.environ if environ is None else environ
    if config["environment"] == "production" and not environ.get("EXPENSE_TRACKER_CORS_ORIGIN"):
        raise ConfigError("Missing required environment variable: EXPENSE_TRACKER_CORS_ORIGIN")
    if not config.get("db_path"):
        raise ConfigError("db_path must be set")


def save_config(config: Dict[str, object], path: Path | str | None = None) -> None:
    target = Path(path) if path else CONFIG_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config, fp, sort_keys=False)
