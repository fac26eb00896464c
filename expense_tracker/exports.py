"""Export stored transactions as JSON, CSV or an Excel workbook."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from typing import Dict, Iterable, List

import xlsxwriter

from expense_tracker.core.models import Transaction

EXPORT_FORMATS = ("json", "csv", "xlsx")
CSV_HEADERS = ["id", "date", "type", "category", "description", "amount", "tags", "notes"]

MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def _exported_at() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def to_json_payload(transactions: Iterable[Transaction]) -> Dict[str, object]:
    return {
        "transactions": [tx.to_dict() for tx in transactions],
        "exportedAt": _exported_at(),
    }


def _csv_row(tx: Transaction) -> List[object]:
    return [
        tx.id,
        tx.date.isoformat(),
        tx.type,
        tx.category,
        tx.description,
        f"{tx.amount:.2f}",
        ";".join(tx.tags),
        tx.notes or "",
    ]


def to_csv(transactions: Iterable[Transaction]) -> str:
    """Render transactions as CSV text, oldest first."""
    ordered = sorted(transactions, key=lambda tx: (tx.date, tx.id or 0))
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for tx in ordered:
        writer.writerow(_csv_row(tx))
    return buffer.getvalue()


def build_summary_rows(transactions: Iterable[Transaction]) -> List[List[object]]:
    """Per-month, per-category income and expense totals.

    Rows are ``[month, category, income, expense]`` sorted by month then
    category, followed by one ``[month + " Total", "", income, expense]`` row
    per month and a final ``Grand Total`` row.
    """
    totals: Dict[str, Dict[str, List[float]]] = {}
    for tx in transactions:
        month = tx.date.strftime("%Y-%m")
        bucket = totals.setdefault(month, {}).setdefault(tx.category, [0.0, 0.0])
        bucket[0 if tx.type == "income" else 1] += tx.amount

    rows: List[List[object]] = []
    grand_income = grand_expense = 0.0
    for month in sorted(totals):
        month_income = month_expense = 0.0
        for category in sorted(totals[month]):
            income, expense = totals[month][category]
            rows.append([month, category, round(income, 2), round(expense, 2)])
            month_income += income
            month_expense += expense
        rows.append([f"{month} Total", "", round(month_income, 2), round(month_expense, 2)])
        grand_income += month_income
        grand_expense += month_expense
    rows.append(["Grand Total", "", round(grand_income, 2), round(grand_expense, 2)])
    return rows


def to_xlsx(transactions: Iterable[Transaction]) -> bytes:
    """Build an in-memory workbook with ``AllData`` and ``Summary`` sheets."""
    ordered = sorted(transactions, key=lambda tx: (tx.date, tx.id or 0))
    output = io.BytesIO()
    workbook = xlsxwriter.Workbook(output, {"in_memory": True})
    amount_fmt = workbook.add_format({"num_format": "€#,##0.00"})

    all_ws = workbook.add_worksheet("AllData")
    all_ws.freeze_panes(1, 0)
    all_ws.write_row(0, 0, CSV_HEADERS)
    for idx, tx in enumerate(ordered, start=1):
        row = _csv_row(tx)
        all_ws.write_row(idx, 0, row[:5])
        all_ws.write_number(idx, 5, tx.amount, amount_fmt)
        all_ws.write_row(idx, 6, row[6:])
    all_ws.set_column(5, 5, None, amount_fmt)
    if ordered:
        all_ws.add_table(0, 0, len(ordered), len(CSV_HEADERS) - 1, {
            "columns": [{"header": h} for h in CSV_HEADERS]
        })

    summary_ws = workbook.add_worksheet("Summary")
    summary_ws.freeze_panes(1, 0)
    summary_ws.write_row(0, 0, ["month", "category", "income", "expense"])
    summary_ws.set_column(2, 3, None, amount_fmt)
    for idx, row in enumerate(build_summary_rows(ordered), start=1):
        summary_ws.write_row(idx, 0, row[:2])
        summary_ws.write_number(idx, 2, row[2], amount_fmt)
        summary_ws.write_number(idx, 3, row[3], amount_fmt)

    workbook.close()
    return output.getvalue()


def render(transactions: Iterable[Transaction], fmt: str) -> bytes:
    """Render ``transactions`` in one of :data:`EXPORT_FORMATS` as bytes."""
    transactions = list(transactions)
    if fmt == "json":
        return json.dumps(to_json_payload(transactions), indent=2).encode("utf-8")
    if fmt == "csv":
        return to_csv(transactions).encode("utf-8")
    if fmt == "xlsx":
        return to_xlsx(transactions)
    raise ValueError(f"Unsupported export format '{fmt}'.")
