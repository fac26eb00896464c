# expense_tracker/core/validation.py
"""Field-level validation for transaction payloads.

Both entry points return a dict of cleaned values ready for
:mod:`expense_tracker.database`. The first failing field raises a
:class:`~expense_tracker.errors.ValidationError` whose ``code`` names the field
(``INVALID_AMOUNT``, ``INVALID_CATEGORY`` ...). Schema limits that are only
checked once every field parsed (maximum amount, text lengths) are reported
together under ``VALIDATION_ERROR`` with one message per problem.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Mapping

from expense_tracker.core.models import (
    CATEGORIES,
    DESCRIPTION_MAX,
    DESCRIPTION_MIN,
    MAX_AMOUNT,
    MIN_AMOUNT,
    NOTES_MAX,
    TRANSACTION_TYPES,
)
from expense_tracker.errors import ValidationError


def parse_date(value: Any) -> date:
    """Parse ``YYYY-MM-DD`` or an ISO datetime string into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unrecognized date: {value!r}")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).date()


def _parse_amount(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if amount != amount or amount <= 0:  # NaN or non-positive
        return None
    return round(amount, 2)


def _clean_tags(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    tags = []
    for tag in value:
        text = str(tag).strip()
        if text:
            tags.append(text)
    return tags


def _clean_notes(value: Any) -> str | None:
    if not value:
        return None
    return str(value)


def _schema_errors(data: Mapping[str, Any]) -> List[str]:
    errors = []
    amount = data.get("amount")
    if amount is not None:
        if amount < MIN_AMOUNT:
            errors.append(f"Amount must be at least {MIN_AMOUNT}")
        if amount > MAX_AMOUNT:
            errors.append(f"Amount must not exceed {MAX_AMOUNT:,}")
    description = data.get("description")
    if description is not None and len(description) > DESCRIPTION_MAX:
        errors.append(f"Description must not exceed {DESCRIPTION_MAX} characters")
    notes = data.get("notes")
    if notes is not None and len(notes) > NOTES_MAX:
        errors.append(f"Notes must not exceed {NOTES_MAX} characters")
    return errors


def _check_schema(data: Mapping[str, Any]) -> None:
    errors = _schema_errors(data)
    if errors:
        raise ValidationError("Validation failed", details=errors)


def validate_create(payload: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Validate a create payload and return the cleaned transaction fields."""
    payload = payload or {}

    amount = _parse_amount(payload.get("amount"))
    if amount is None:
        raise ValidationError(
            "Amount is required and must be greater than 0", code="INVALID_AMOUNT"
        )

    category = payload.get("category")
    if not category or category not in CATEGORIES:
        raise ValidationError("Invalid or missing category", code="INVALID_CATEGORY")

    description = payload.get("description")
    if not isinstance(description, str) or len(description.strip()) < DESCRIPTION_MIN:
        raise ValidationError(
            f"Description is required (min. {DESCRIPTION_MIN} characters)",
            code="INVALID_DESCRIPTION",
        )

    tx_type = payload.get("type")
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError(
            'Type must be "income" or "expense"', code="INVALID_TYPE"
        )

    raw_date = payload.get("date")
    if not raw_date:
        raise ValidationError(
            "Date is required (format: YYYY-MM-DD)", code="INVALID_DATE"
        )
    try:
        parsed_date = parse_date(raw_date)
    except ValueError:
        raise ValidationError(
            "Invalid date format. Use YYYY-MM-DD", code="INVALID_DATE_FORMAT"
        ) from None

    data = {
        "amount": amount,
        "category": category,
        "description": description.strip(),
        "type": tx_type,
        "date": parsed_date,
        "tags": _clean_tags(payload.get("tags")),
        "notes": _clean_notes(payload.get("notes")),
    }
    _check_schema(data)
    return data


def validate_update(payload: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Validate a partial update; only keys present in ``payload`` are returned."""
    payload = payload or {}
    changes: Dict[str, Any] = {}

    if "amount" in payload:
        amount = _parse_amount(payload["amount"])
        if amount is None:
            raise ValidationError("Amount must be greater than 0", code="INVALID_AMOUNT")
        changes["amount"] = amount

    if "category" in payload:
        if payload["category"] not in CATEGORIES:
            raise ValidationError("Invalid category", code="INVALID_CATEGORY")
        changes["category"] = payload["category"]

    if "description" in payload:
        description = payload["description"]
        if not isinstance(description, str) or len(description.strip()) < DESCRIPTION_MIN:
            raise ValidationError(
                f"Description must be at least {DESCRIPTION_MIN} characters long",
                code="INVALID_DESCRIPTION",
            )
        changes["description"] = description.strip()

    if "type" in payload:
        if payload["type"] not in TRANSACTION_TYPES:
            raise ValidationError(
                'Type must be "income" or "expense"', code="INVALID_TYPE"
            )
        changes["type"] = payload["type"]

    if "date" in payload:
        try:
            changes["date"] = parse_date(payload["date"])
        except ValueError:
            raise ValidationError(
                "Invalid date format. Use YYYY-MM-DD", code="INVALID_DATE_FORMAT"
            ) from None

    if "tags" in payload:
        changes["tags"] = _clean_tags(payload["tags"])

    if "notes" in payload:
        changes["notes"] = _clean_notes(payload["notes"])

    _check_schema(changes)
    return changes
