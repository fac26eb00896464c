# expense_tracker/manual.py
import yaml

from expense_tracker.core.validation import validate_create
from expense_tracker.errors import ValidationError


def load_manual_transactions(path):
    """Load and validate transactions from a YAML file.

    The file holds a list of mappings with the same keys the HTTP API
    accepts. Returns the cleaned field dicts, ready to be stored.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or []

    if not isinstance(data, list):
        raise ValueError(f"Expected a list of transactions in {path}")

    entries = []
    for idx, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"Entry {idx} in {path} is not a mapping: {entry}")
        try:
            entries.append(validate_create(entry))
        except ValidationError as exc:
            reason = "; ".join(exc.details) if exc.details else exc.message
            raise ValueError(f"Invalid entry {idx} ({exc.code}): {reason}") from exc
    return entries
