from datetime import date

from expense_tracker.database import (
    count_transactions,
    dashboard_data,
    fetch_all,
    query_transactions,
    summary_stats,
)


def test_empty_db_queries(tmp_path):
    db_path = str(tmp_path / "empty.db")

    assert query_transactions(db_path) == []
    assert count_transactions(db_path) == 0
    assert fetch_all(db_path) == []

    summary = summary_stats(db_path)
    assert summary == {
        "totalIncome": 0.0,
        "totalExpense": 0.0,
        "balance": 0.0,
        "transactionCount": 0,
    }

    dashboard = dashboard_data(db_path, today=date(2025, 6, 15))
    assert dashboard["period"] == {"year": 2025, "month": 6}
    assert dashboard["summary"]["currentMonth"]["transactionCount"] == 0
    assert dashboard["summary"]["trends"] == {"income": None, "expense": None, "balance": None}
    assert dashboard["summary"]["totalTransactions"] == 0
    assert dashboard["monthlyTrend"] == []
    assert dashboard["categoryBreakdown"] == []
    assert dashboard["recentTransactions"] == []
