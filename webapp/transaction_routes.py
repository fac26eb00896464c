from __future__ import annotations

import logging
import math
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import Response

from expense_tracker import database
from expense_tracker.core.validation import parse_date, validate_create, validate_update
from expense_tracker.errors import ApiError, FeatureDisabledError, NotFoundError, ValidationError
from expense_tracker.exports import EXPORT_FORMATS, MEDIA_TYPES, render
from webapp.dependencies import get_config, get_db_path, optional_auth, require_stats

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_SQLITE_INT = 2**63 - 1

router = APIRouter(
    prefix="/api/transactions",
    tags=["transactions"],
    dependencies=[Depends(optional_auth)],
)


def _parse_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value) or default
    except ValueError:
        return default


def _parse_filter_date(value: str | None) -> date | None:
    """Filters silently ignore dates they cannot parse."""
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError:
        return None


def _parse_id(raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise ValidationError("Invalid transaction ID", code="INVALID_ID")
    tx_id = int(raw)
    if tx_id > MAX_SQLITE_INT:
        raise NotFoundError("Transaction not found")
    return tx_id


def _deleted_at() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# Stats routes are declared before /{transaction_id} so they are matched first.

@router.get("/stats/summary", dependencies=[Depends(require_stats)])
def get_summary(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    db_path: str = Depends(get_db_path),
):
    stats = database.summary_stats(
        db_path,
        start_date=_parse_filter_date(start_date),
        end_date=_parse_filter_date(end_date),
    )
    return {"success": True, "data": stats}


@router.get("/stats/dashboard", dependencies=[Depends(require_stats)])
def get_dashboard(
    month: Optional[str] = Query(None),
    year: Optional[str] = Query(None),
    db_path: str = Depends(get_db_path),
):
    month_num = _parse_int(month, 0) or None
    year_num = _parse_int(year, 0) or None
    if month_num is not None and not 1 <= month_num <= 12:
        raise ValidationError("Month must be between 1 and 12", code="INVALID_MONTH")
    if year_num is not None and not 1 <= year_num <= 9999:
        raise ValidationError("Invalid year", code="INVALID_YEAR")
    data = database.dashboard_data(db_path, month=month_num, year=year_num)
    return {"success": True, "data": data}


@router.get("/export")
def export_transactions(
    fmt: str = Query("json", alias="format"),
    db_path: str = Depends(get_db_path),
):
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(
            f"Format must be one of {', '.join(EXPORT_FORMATS)}", code="INVALID_FORMAT"
        )
    body = render(database.fetch_all(db_path), fmt)
    return Response(
        content=body,
        media_type=MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="transactions.{fmt}"'},
    )


@router.post("", status_code=201)
def create_transaction(
    payload: Optional[dict] = Body(None),
    db_path: str = Depends(get_db_path),
):
    data = validate_create(payload)
    transaction = database.create_transaction(db_path, data)
    logger.info("Transaction %s created", transaction.id)
    return {
        "success": True,
        "data": transaction.to_dict(),
        "message": "Transaction created",
    }


@router.get("")
def list_transactions(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    tx_type: Optional[str] = Query(None, alias="type"),
    category: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = Query(None),
    sort: str = Query("date"),
    order: str = Query("desc"),
    db_path: str = Depends(get_db_path),
):
    page_num = max(1, _parse_int(page, 1))
    limit_num = min(MAX_LIMIT, max(1, _parse_int(limit, DEFAULT_LIMIT)))
    filters = dict(
        tx_type=tx_type,
        category=category or None,
        start_date=_parse_filter_date(start_date),
        end_date=_parse_filter_date(end_date),
        search=search,
    )
    total = database.count_transactions(db_path, **filters)
    offset = (page_num - 1) * limit_num
    transactions = []
    if offset < total:
        transactions = database.query_transactions(
            db_path,
            sort=sort,
            order=order,
            limit=limit_num,
            offset=offset,
            **filters,
        )
    payload = {
        "success": True,
        "data": [tx.to_dict() for tx in transactions],
        "pagination": {
            "page": page_num,
            "limit": limit_num,
            "total": total,
            "pages": math.ceil(total / limit_num),
        },
    }
    if search:
        payload["searchQuery"] = search
    return payload


@router.delete("")
def delete_all_transactions(
    confirm: Optional[str] = Query(None),
    config: dict = Depends(get_config),
):
    if not config["features"].get("bulk_delete", True):
        raise FeatureDisabledError("Bulk delete is disabled", status_code=403)
    if confirm != "true":
        raise ApiError(
            "Confirmation required: ?confirm=true",
            code="MISSING_CONFIRMATION",
            status_code=400,
        )
    deleted = database.delete_all_transactions(config["db_path"])
    return {
        "success": True,
        "message": "All transactions deleted",
        "data": {"deletedCount": deleted, "deletedAt": _deleted_at()},
    }


@router.get("/{transaction_id}")
def get_transaction(transaction_id: str, db_path: str = Depends(get_db_path)):
    transaction = database.get_transaction(db_path, _parse_id(transaction_id))
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return {"success": True, "data": transaction.to_dict()}


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: str,
    payload: Optional[dict] = Body(None),
    db_path: str = Depends(get_db_path),
):
    tx_id = _parse_id(transaction_id)
    if database.get_transaction(db_path, tx_id) is None:
        raise NotFoundError("Transaction not found")
    changes = validate_update(payload)
    transaction = database.update_transaction(db_path, tx_id, changes)
    if transaction is None:
        raise NotFoundError("Transaction not found")
    return {
        "success": True,
        "data": transaction.to_dict(),
        "message": "Transaction updated",
    }


@router.delete("/{transaction_id}")
def delete_transaction(transaction_id: str, db_path: str = Depends(get_db_path)):
    transaction = database.delete_transaction(db_path, _parse_id(transaction_id))
    if transaction is None:
        raise NotFoundError("Transaction not found")
    logger.info("Transaction %s deleted", transaction.id)
    return {
        "success": True,
        "message": "Transaction deleted",
        "data": {"id": transaction.id, "deletedAt": _deleted_at()},
    }
