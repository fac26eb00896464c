from __future__ import annotations

from typing import Optional

from fastapi import Request

from expense_tracker.auth import TokenStore
from expense_tracker.errors import FeatureDisabledError


def get_config(request: Request) -> dict:
    return request.app.state.config


def get_db_path(request: Request) -> str:
    return request.app.state.config["db_path"]


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.tokens


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization")
    if not header or not header.startswith("Bearer "):
        return None
    return header[7:].strip() or None


def current_user(request: Request) -> dict:
    return get_token_store(request).authenticate(bearer_token(request))


def optional_auth(request: Request) -> Optional[dict]:
    """Enforce a valid access token only when ``auth.required`` is set."""
    if not get_config(request)["auth"].get("required"):
        return None
    return current_user(request)


def require_stats(request: Request) -> None:
    if not get_config(request)["features"].get("stats", True):
        raise FeatureDisabledError("Statistics are disabled")
