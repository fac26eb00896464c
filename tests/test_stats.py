from datetime import date

import pytest

from expense_tracker.database import (
    calculate_trend,
    create_transaction,
    dashboard_data,
    summary_stats,
)


def test_summary_over_everything(seeded_db):
    assert summary_stats(seeded_db) == {
        "totalIncome": 2800.0,
        "totalExpense": 917.5,
        "balance": 1882.5,
        "transactionCount": 6,
    }


def test_summary_with_inclusive_date_range(seeded_db):
    stats = summary_stats(seeded_db, start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))
    assert stats == {
        "totalIncome": 2500.0,
        "totalExpense": 57.5,
        "balance": 2442.5,
        "transactionCount": 3,
    }


def test_summary_rounds_money(db_path, tx_data):
    for _ in range(3):
        create_transaction(db_path, tx_data(amount=0.1))
    stats = summary_stats(db_path)
    assert stats["totalExpense"] == 0.3
    assert stats["balance"] == -0.3


@pytest.mark.parametrize(
    "current, previous, expected",
    [
        (0, 0, None),
        (100, 0, None),
        (150, 100, 50),
        (50, 100, -50),
        (5, 8, -37),
        (-50, 100, -150),
        (10, -20, 150),
    ],
)
def test_calculate_trend(current, previous, expected):
    assert calculate_trend(current, previous) == expected


def test_dashboard_for_selected_month(seeded_db):
    data = dashboard_data(seeded_db, month=2, year=2025)

    assert data["period"] == {"year": 2025, "month": 2}
    assert data["summary"]["currentMonth"] == {
        "income": 300.0,
        "expense": 860.0,
        "balance": -560.0,
        "transactionCount": 3,
    }
    assert data["summary"]["trends"] == {"income": -88, "expense": 1396, "balance": -123}
    assert data["summary"]["totalTransactions"] == 6
    assert data["monthlyTrend"] == [
        {"year": 2025, "month": 1, "income": 2500.0, "expense": 57.5},
        {"year": 2025, "month": 2, "income": 300.0, "expense": 860.0},
    ]
    assert [(c["category"], c["type"], c["total"]) for c in data["categoryBreakdown"]] == [
        ("Rent", "expense", 800.0),
        ("Freelance", "income", 300.0),
        ("Transport", "expense", 60.0),
    ]
    assert [t["description"] for t in data["recentTransactions"]] == [
        "Logo design",
        "February rent",
        "Fuel refill",
    ]


def test_dashboard_without_previous_month_has_no_trends(seeded_db):
    data = dashboard_data(seeded_db, month=1, year=2025)
    assert data["summary"]["trends"] == {"income": None, "expense": None, "balance": None}
    assert data["monthlyTrend"] == [
        {"year": 2025, "month": 1, "income": 2500.0, "expense": 57.5},
    ]


def test_dashboard_defaults_to_today(seeded_db):
    data = dashboard_data(seeded_db, today=date(2025, 2, 20))
    assert data["period"] == {"year": 2025, "month": 2}
    assert data["summary"]["currentMonth"]["transactionCount"] == 3


def test_dashboard_trend_window_spans_year_boundary(db_path, tx_data):
    create_transaction(db_path, tx_data(date=date(2024, 9, 30)))
    create_transaction(db_path, tx_data(date=date(2024, 10, 1)))
    create_transaction(db_path, tx_data(date=date(2025, 3, 1)))
    data = dashboard_data(db_path, month=3, year=2025)
    assert [(m["year"], m["month"]) for m in data["monthlyTrend"]] == [(2024, 10), (2025, 3)]


def test_dashboard_rejects_bad_month(seeded_db):
    with pytest.raises(ValueError):
        dashboard_data(seeded_db, month=13, year=2025)


def test_dashboard_in_first_months_of_year_one(seeded_db):
    data = dashboard_data(seeded_db, month=3, year=1)
    assert data["period"] == {"year": 1, "month": 3}
    assert data["summary"]["currentMonth"]["transactionCount"] == 0
    assert data["summary"]["trends"] == {"income": None, "expense": None, "balance": None}
    assert data["monthlyTrend"] == []


def test_dashboard_rejects_bad_year(seeded_db):
    with pytest.raises(ValueError):
        dashboard_data(seeded_db, month=1, year=10000)
