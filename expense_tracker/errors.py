# expense_tracker/errors.py
from __future__ import annotations

from typing import List, Optional


class ApiError(Exception):
    """Base error carrying an HTTP status and a machine-readable code."""

    status_code = 500
    code = "SERVER_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        details: Optional[List[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_payload(self) -> dict:
        payload = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            payload["details"] = list(self.details)
        return payload


class ValidationError(ApiError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND"


class AuthError(ApiError):
    status_code = 401
    code = "INVALID_TOKEN"


class FeatureDisabledError(ApiError):
    status_code = 404
    code = "FEATURE_DISABLED"


class ConfigError(Exception):
    """Raised when the loaded configuration cannot be used."""
