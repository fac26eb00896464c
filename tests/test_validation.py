from datetime import date

import pytest

from expense_tracker.core.validation import parse_date, validate_create, validate_update
from expense_tracker.errors import ValidationError


def _payload(**overrides):
    payload = {
        "amount": 19.999,
        "category": "Groceries",
        "description": "  Farmers market  ",
        "type": "expense",
        "date": "2025-03-14",
    }
    payload.update(overrides)
    return payload


def test_validate_create_cleans_fields():
    data = validate_create(_payload(tags=["food", " ", "weekly "], notes=""))
    assert data["amount"] == 20.0
    assert data["description"] == "Farmers market"
    assert data["date"] == date(2025, 3, 14)
    assert data["tags"] == ["food", "weekly"]
    assert data["notes"] is None


def test_validate_create_accepts_numeric_strings_and_datetimes():
    data = validate_create(_payload(amount="19.9", date="2025-03-14T18:30:00Z"))
    assert data["amount"] == 19.9
    assert data["date"] == date(2025, 3, 14)


@pytest.mark.parametrize(
    "overrides, code",
    [
        ({"amount": None}, "INVALID_AMOUNT"),
        ({"amount": 0}, "INVALID_AMOUNT"),
        ({"amount": -5}, "INVALID_AMOUNT"),
        ({"amount": "abc"}, "INVALID_AMOUNT"),
        ({"amount": True}, "INVALID_AMOUNT"),
        ({"category": "Yachts"}, "INVALID_CATEGORY"),
        ({"category": None}, "INVALID_CATEGORY"),
        ({"description": "ab "}, "INVALID_DESCRIPTION"),
        ({"description": 42}, "INVALID_DESCRIPTION"),
        ({"type": "transfer"}, "INVALID_TYPE"),
        ({"date": None}, "INVALID_DATE"),
        ({"date": "14/03/2025"}, "INVALID_DATE_FORMAT"),
    ],
)
def test_validate_create_field_codes(overrides, code):
    with pytest.raises(ValidationError) as excinfo:
        validate_create(_payload(**overrides))
    assert excinfo.value.code == code
    assert excinfo.value.status_code == 400


def test_validate_create_reports_schema_limits_together():
    with pytest.raises(ValidationError) as excinfo:
        validate_create(
            _payload(amount=2_000_000, description="x" * 256, notes="n" * 501)
        )
    err = excinfo.value
    assert err.code == "VALIDATION_ERROR"
    assert len(err.details) == 3


def test_validate_create_rejects_amount_rounding_to_zero():
    with pytest.raises(ValidationError) as excinfo:
        validate_create(_payload(amount=0.004))
    assert excinfo.value.code == "VALIDATION_ERROR"


def test_validate_update_only_returns_given_fields():
    changes = validate_update({"amount": "7.5", "notes": ""})
    assert changes == {"amount": 7.5, "notes": None}


def test_validate_update_replaces_non_list_tags():
    assert validate_update({"tags": "oops"}) == {"tags": []}


def test_validate_update_field_codes():
    with pytest.raises(ValidationError) as excinfo:
        validate_update({"amount": 0})
    assert excinfo.value.code == "INVALID_AMOUNT"

    with pytest.raises(ValidationError) as excinfo:
        validate_update({"date": "not-a-date"})
    assert excinfo.value.code == "INVALID_DATE_FORMAT"

    with pytest.raises(ValidationError) as excinfo:
        validate_update({"description": "  a  "})
    assert excinfo.value.code == "INVALID_DESCRIPTION"


def test_validate_update_empty_payload():
    assert validate_update(None) == {}


def test_parse_date_variants():
    assert parse_date("2025-01-02") == date(2025, 1, 2)
    assert parse_date("2025-01-02T23:59:59+01:00") == date(2025, 1, 2)
    assert parse_date(date(2024, 2, 29)) == date(2024, 2, 29)
    with pytest.raises(ValueError):
        parse_date("")
    with pytest.raises(ValueError):
        parse_date(20250102)
