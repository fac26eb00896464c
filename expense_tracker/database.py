from __future__ import annotations

import calendar
import json
import logging
import math
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

from expense_tracker.core.models import TRANSACTION_TYPES, Transaction

logger = logging.getLogger(__name__)

_COLUMNS = "id, amount, category, description, type, date, tags, notes, created_at, updated_at"
_SORT_COLUMNS = {"date": "date", "amount": "amount"}


def _init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id INTEGER PRIMARY KEY,
            amount REAL NOT NULL,
            category TEXT NOT NULL,
            description TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'expense',
            date TEXT NOT NULL,
            tags TEXT NOT NULL DEFAULT '[]',
            notes TEXT,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
        CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions (date);
        CREATE INDEX IF NOT EXISTS idx_transactions_category_date ON transactions (category, date);
        CREATE INDEX IF NOT EXISTS idx_transactions_type_date ON transactions (type, date);
        """
    )
    conn.commit()


def _connect(db_path: str) -> sqlite3.Connection:
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    _init_db(conn)
    return conn


def _now() -> str:
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def _row_to_transaction(row: tuple) -> Transaction:
    return Transaction(
        id=int(row[0]),
        amount=float(row[1]),
        category=row[2],
        description=row[3],
        type=row[4],
        date=date.fromisoformat(row[5]),
        tags=json.loads(row[6] or "[]"),
        notes=row[7],
        created_at=row[8],
        updated_at=row[9],
    )


def check_connection(db_path: str) -> bool:
    """Return True when the database can be opened and queried."""
    try:
        conn = _connect(db_path)
    except (sqlite3.Error, OSError):
        return False
    try:
        conn.execute("SELECT 1").fetchone()
        return True
    except sqlite3.Error:
        return False
    finally:
        conn.close()


def create_transaction(db_path: str, data: Mapping[str, Any]) -> Transaction:
    """Insert a validated transaction and return it with its id and timestamps.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    data:
        Cleaned fields as returned by
        :func:`expense_tracker.core.validation.validate_create`.
    """
    stamp = _now()
    conn = _connect(db_path)
    try:
        cursor = conn.execute(
            """
            INSERT INTO transactions
            (amount, category, description, type, date, tags, notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                float(data["amount"]),
                data["category"],
                data["description"],
                data["type"],
                data["date"].isoformat(),
                json.dumps(list(data.get("tags") or [])),
                data.get("notes"),
                stamp,
                stamp,
            ),
        )
        conn.commit()
        new_id = cursor.lastrowid
    finally:
        conn.close()
    logger.debug("Created transaction %s", new_id)
    return get_transaction(db_path, new_id)


def get_transaction(db_path: str, transaction_id: int) -> Transaction | None:
    conn = _connect(db_path)
    try:
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM transactions WHERE id = ?", (transaction_id,)
        ).fetchone()
    finally:
        conn.close()
    return _row_to_transaction(row) if row else None


def update_transaction(
    db_path: str, transaction_id: int, changes: Mapping[str, Any]
) -> Transaction | None:
    """Apply validated partial changes. Returns None if the id does not exist."""
    existing = get_transaction(db_path, transaction_id)
    if existing is None:
        return None

    merged = {
        "amount": existing.amount,
        "category": existing.category,
        "description": existing.description,
        "type": existing.type,
        "date": existing.date,
        "tags": existing.tags,
        "notes": existing.notes,
    }
    merged.update(changes)

    conn = _connect(db_path)
    try:
        conn.execute(
            """
            UPDATE transactions
            SET amount = ?, category = ?, description = ?, type = ?, date = ?,
                tags = ?, notes = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                float(merged["amount"]),
                merged["category"],
                merged["description"],
                merged["type"],
                merged["date"].isoformat(),
                json.dumps(list(merged["tags"] or [])),
                merged["notes"],
                _now(),
                transaction_id,
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return get_transaction(db_path, transaction_id)


def delete_transaction(db_path: str, transaction_id: int) -> Transaction | None:
    """Delete one transaction and return what was removed."""
    existing = get_transaction(db_path, transaction_id)
    if existing is None:
        return None
    conn = _connect(db_path)
    try:
        conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        conn.commit()
    finally:
        conn.close()
    return existing


def delete_all_transactions(db_path: str) -> int:
    conn = _connect(db_path)
    try:
        cursor = conn.execute("DELETE FROM transactions")
        conn.commit()
        deleted = cursor.rowcount
    finally:
        conn.close()
    logger.warning("Deleted all transactions (%s rows)", deleted)
    return deleted


def _build_filters(
    tx_type: str | None = None,
    category: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
) -> Tuple[str, List[Any]]:
    conditions: List[str] = []
    params: List[Any] = []
    if tx_type in TRANSACTION_TYPES:
        conditions.append("type = ?")
        params.append(tx_type)
    if category:
        conditions.append("category = ?")
        params.append(category)
    if start_date:
        conditions.append("date >= ?")
        params.append(start_date.isoformat())
    if end_date:
        conditions.append("date <= ?")
        params.append(end_date.isoformat())
    if search and search.strip():
        term = search.strip()
        for char in ("\\", "%", "_"):
            term = term.replace(char, "\\" + char)
        pattern = f"%{term}%"
        conditions.append(
            "(description LIKE ? ESCAPE '\\' OR category LIKE ? ESCAPE '\\')"
        )
        params.extend([pattern, pattern])
    where = " WHERE " + " AND ".join(conditions) if conditions else ""
    return where, params


def query_transactions(
    db_path: str,
    tx_type: str | None = None,
    category: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
    sort: str = "date",
    order: str = "desc",
    limit: int | None = None,
    offset: int = 0,
) -> List[Transaction]:
    """Return transactions matching the filters, sorted and paginated.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.
    tx_type:
        ``income`` or ``expense``; any other value is ignored.
    category:
        Exact category name.
    start_date, end_date:
        Inclusive date bounds.
    search:
        Case-insensitive substring matched against description and category.
    sort:
        ``date`` (default) or ``amount``.
    order:
        ``asc`` or ``desc`` (default). Ties are broken by id in the same
        direction.
    limit, offset:
        Optional pagination window.
    """
    column = _SORT_COLUMNS.get(sort, "date")
    direction = "ASC" if order == "asc" else "DESC"
    where, params = _build_filters(tx_type, category, start_date, end_date, search)
    query = (
        f"SELECT {_COLUMNS} FROM transactions{where} "
        f"ORDER BY {column} {direction}, id {direction}"
    )
    if limit is not None:
        query += " LIMIT ? OFFSET ?"
        params = params + [int(limit), int(offset)]

    conn = _connect(db_path)
    try:
        rows = conn.execute(query, params).fetchall()
    finally:
        conn.close()
    return [_row_to_transaction(r) for r in rows]


def count_transactions(
    db_path: str,
    tx_type: str | None = None,
    category: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    search: str | None = None,
) -> int:
    where, params = _build_filters(tx_type, category, start_date, end_date, search)
    conn = _connect(db_path)
    try:
        row = conn.execute(f"SELECT COUNT(*) FROM transactions{where}", params).fetchone()
    finally:
        conn.close()
    return int(row[0] or 0)


def fetch_all(db_path: str) -> List[Transaction]:
    """Every stored transaction, oldest first."""
    return query_transactions(db_path, sort="date", order="asc")


def _income_expense(
    conn: sqlite3.Connection, where: str, params: List[Any]
) -> Tuple[float, float, int]:
    row = conn.execute(
        f"""
        SELECT COALESCE(SUM(CASE WHEN type = 'income' THEN amount ELSE 0 END), 0.0),
               COALESCE(SUM(CASE WHEN type = 'expense' THEN amount ELSE 0 END), 0.0),
               COUNT(*)
        FROM transactions
        {where}
        """,
        params,
    ).fetchone()
    return float(row[0] or 0.0), float(row[1] or 0.0), int(row[2] or 0)


def summary_stats(
    db_path: str,
    start_date: date | None = None,
    end_date: date | None = None,
) -> Dict[str, object]:
    """Total income, total expense, balance and count for a date range."""
    where, params = _build_filters(start_date=start_date, end_date=end_date)
    conn = _connect(db_path)
    try:
        income, expense, count = _income_expense(conn, where, params)
    finally:
        conn.close()
    return {
        "totalIncome": round(income, 2),
        "totalExpense": round(expense, 2),
        "balance": round(income - expense, 2),
        "transactionCount": count,
    }


def calculate_trend(current: float, previous: float) -> int | None:
    """Percent change from ``previous`` to ``current``, rounded half up.

    Returns None when there is no previous value to compare against.
    """
    if previous == 0:
        return None
    return math.floor((current - previous) / abs(previous) * 100 + 0.5)


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _month_bounds(year: int, month: int) -> Tuple[date, date]:
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def dashboard_data(
    db_path: str,
    month: int | None = None,
    year: int | None = None,
    today: date | None = None,
) -> Dict[str, object]:
    """Aggregate everything the dashboard view needs for one month.

    ``month`` is 1-based and defaults, like ``year``, to the month of
    ``today``. The result holds the month's summary with trends against the
    previous month, a six-month income/expense trend ending at the selected
    month, the category breakdown of the month and its five most recent
    transactions.
    """
    today = today or date.today()
    year = year or today.year
    month = month or today.month
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise ValueError(f"year must be between 1 and 9999, got {year}")

    month_start, month_end = _month_bounds(year, month)
    last_year, last_month = _shift_month(year, month, -1)
    trend_year, trend_month = _shift_month(year, month, -5)
    # Months before year 1 do not exist; the windows stop at date.min.
    trend_start = _month_bounds(trend_year, trend_month)[0] if trend_year >= 1 else date.min

    conn = _connect(db_path)
    try:
        cur_where, cur_params = _build_filters(start_date=month_start, end_date=month_end)
        income, expense, count = _income_expense(conn, cur_where, cur_params)

        last_income = last_expense = 0.0
        if last_year >= 1:
            last_start, last_end = _month_bounds(last_year, last_month)
            last_where, last_params = _build_filters(start_date=last_start, end_date=last_end)
            last_income, last_expense, _ = _income_expense(conn, last_where, last_params)

        total_row = conn.execute("SELECT COUNT(*) FROM transactions").fetchone()

        trend_where, trend_params = _build_filters(start_date=trend_start, end_date=month_end)
        trend_rows = conn.execute(
            f"""
            SELECT CAST(strftime('%Y', date) AS INTEGER) AS year,
                   CAST(strftime('%m', date) AS INTEGER) AS month,
                   SUM(CASE WHEN type = 'income' THEN amount ELSE 0 END) AS income,
                   SUM(CASE WHEN type = 'expense' THEN amount ELSE 0 END) AS expense
            FROM transactions
            {trend_where}
            GROUP BY year, month
            ORDER BY year, month
            """,
            trend_params,
        ).fetchall()

        category_rows = conn.execute(
            f"""
            SELECT category, type, SUM(amount) AS total, COUNT(*) AS count
            FROM transactions
            {cur_where}
            GROUP BY category, type
            ORDER BY total DESC
            """,
            cur_params,
        ).fetchall()

        recent_rows = conn.execute(
            f"""
            SELECT {_COLUMNS} FROM transactions
            {cur_where}
            ORDER BY date DESC, created_at DESC, id DESC
            LIMIT 5
            """,
            cur_params,
        ).fetchall()
    finally:
        conn.close()

    recent = [_row_to_transaction(r) for r in recent_rows]
    return {
        "period": {"year": year, "month": month},
        "summary": {
            "currentMonth": {
                "income": round(income, 2),
                "expense": round(expense, 2),
                "balance": round(income - expense, 2),
                "transactionCount": count,
            },
            "trends": {
                "income": calculate_trend(income, last_income),
                "expense": calculate_trend(expense, last_expense),
                "balance": calculate_trend(income - expense, last_income - last_expense),
            },
            "totalTransactions": int(total_row[0] or 0),
        },
        "monthlyTrend": [
            {
                "year": row[0],
                "month": row[1],
                "income": round(float(row[2] or 0.0), 2),
                "expense": round(float(row[3] or 0.0), 2),
            }
            for row in trend_rows
        ],
        "categoryBreakdown": [
            {
                "category": row[0],
                "type": row[1],
                "total": round(float(row[2] or 0.0), 2),
                "count": int(row[3]),
            }
            for row in category_rows
        ],
        "recentTransactions": [
            {
                "id": tx.id,
                "amount": tx.amount,
                "category": tx.category,
                "description": tx.description,
                "type": tx.type,
                "date": tx.date.isoformat(),
            }
            for tx in recent
        ],
    }
