from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from fastapi import APIRouter, Depends, Request
from sqlalchemy import Date, case, func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import require_admin
from app.core.errors import DependencyError, ValidationError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.common import utcnow
from app.models.settlement import Settlement
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.settlements import SETTLEMENT_FIELDS, SettlementCreate, SettlementStatusChange, SettlementUpdate
from app.services.aggregates import collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.lookups import search_stores, search_users
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, exists, load_or_404
from app.services.status_policy import (
    SETTLEMENT_STATUSES,
    check_settlement_transition,
    normalize_settlement_status,
)
from app.services.universal_query import Equals, InSet, Like, Range, as_int, compile_filters

router = APIRouter()

_HUNDRED = Decimal("100")

SETTLEMENT_FILTERS = (
    Like(
        "search",
        (
            Settlement.payment_reference,
            Settlement.comments,
            Settlement.settlement_status,
            Store.name,
            Store.email,
            Store.phone_number,
            User.first_name,
            User.last_name,
            User.email,
            User.phone_number,
            Transaction.transaction_number,
        ),
    ),
    Equals("store_id", Settlement.store_id, coerce=as_int),
    Equals("user_id", Settlement.user_id, coerce=as_int),
    InSet("settlement_status", Settlement.settlement_status, allowed=frozenset(SETTLEMENT_STATUSES)),
    Equals("payment_method", Settlement.payment_method),
    Range("date_from", "date_to", Settlement.created_at),
)
STORE_SETTLEMENT_FILTERS = tuple(op for op in SETTLEMENT_FILTERS if op.param != "store_id")


def _joined_query(db: Session):
    return (
        db.query(
            Settlement,
            Settlement.settlement_id.label("id"),
            Store.name.label("store_name"),
            Store.email.label("store_email"),
            User.first_name.label("user_first_name"),
            User.last_name.label("user_last_name"),
            User.email.label("user_email"),
            Transaction.transaction_number.label("transaction_number"),
        )
        .outerjoin(Store, Store.id == Settlement.store_id)
        .outerjoin(User, User.id == Settlement.user_id)
        .outerjoin(Transaction, Transaction.id == Settlement.transaction_id)
    )


def _totals(db: Session, *criteria) -> dict:
    return collect_stats(
        db,
        Settlement.is_active.is_(True),
        Settlement.settlement_status != "cancelled",
        *criteria,
        totalSettlements=func.count(Settlement.settlement_id),
        totalBillAmount=zero_if_null(func.sum(Settlement.bill_amount)),
        totalCommission=zero_if_null(func.sum(Settlement.commission_amount)),
        totalSettlementAmount=zero_if_null(func.sum(Settlement.settlement_amount)),
        totalNetSettlement=zero_if_null(func.sum(Settlement.net_settlement_amount)),
        pendingSettlements=func.count(case((Settlement.settlement_status == "pending", Settlement.settlement_id))),
        completedSettlements=func.count(case((Settlement.settlement_status == "completed", Settlement.settlement_id))),
        uniqueStores=func.count(func.distinct(Settlement.store_id)),
    )


def _load_settlement(db: Session, raw_id: str) -> Settlement:
    settlement_id = parse_id_or_400(raw_id, "settlement")
    return load_or_404(db, Settlement, settlement_id, "Settlement not found", Settlement.is_active.is_(True))


def _check_references(db: Session, data: dict) -> None:
    if data.get("store_id") is not None and not exists(
        db, Store, Store.id == data["store_id"], Store.is_active.is_(True)
    ):
        raise ValidationError("Invalid store ID or store is inactive")
    if data.get("user_id") is not None and not exists(
        db, User, User.id == data["user_id"], User.is_active.is_(True), User.deleted_at.is_(None)
    ):
        raise ValidationError("Invalid user ID or user is inactive")
    if data.get("transaction_id") is not None and not exists(db, Transaction, Transaction.id == data["transaction_id"]):
        raise ValidationError("Invalid transaction ID")


def _settlement_out(db: Session, settlement_id: int) -> dict:
    return flatten_row(_joined_query(db).filter(Settlement.settlement_id == settlement_id).first())


@router.get("")
def list_settlements(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    criteria = compile_filters(SETTLEMENT_FILTERS, params)

    q = _joined_query(db).filter(Settlement.is_active.is_(True), *criteria)
    rows, total = fetch_page(q, page, Settlement.created_at.desc(), Settlement.settlement_id.desc())
    return list_envelope("settlements", [flatten_row(r) for r in rows], total, page, _totals(db))


@router.get("/stats/overview")
def settlements_overview(period: str | None = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    try:
        days = min(max(int(str(period or 30).strip()), 1), 365)
    except ValueError:
        days = 30
    in_period = Settlement.created_at >= utcnow() - timedelta(days=days)
    overview = _totals(db, in_period)
    overview["period"] = days

    by_status = (
        db.query(
            Settlement.settlement_status.label("settlement_status"),
            func.count(Settlement.settlement_id).label("count"),
            zero_if_null(func.sum(Settlement.settlement_amount), "total_amount"),
        )
        .filter(Settlement.is_active.is_(True), in_period)
        .group_by(Settlement.settlement_status)
        .order_by(Settlement.settlement_status.asc())
        .all()
    )
    day = func.date(Settlement.created_at, type_=Date)
    daily = (
        db.query(
            day.label("date"),
            func.count(Settlement.settlement_id).label("count"),
            zero_if_null(func.sum(Settlement.settlement_amount), "total_amount"),
        )
        .filter(Settlement.is_active.is_(True), in_period)
        .group_by(day)
        .order_by(day.asc())
        .all()
    )
    return item_envelope(
        {
            "overview": overview,
            "statusBreakdown": [flatten_row(r) for r in by_status],
            "dailyTrends": [flatten_row(r) for r in daily],
        }
    )


@router.get("/search/users")
def lookup_users(q: str | None = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope(search_users(db, q))


@router.get("/search/stores")
def lookup_stores(q: str | None = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope(search_stores(db, q))


@router.get("/store/{store_id}")
def list_store_settlements(
    store_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    sid = parse_id_or_400(store_id, "store")
    load_or_404(db, Store, sid, "Store not found")
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"), 100, settings.MAX_HISTORY_PAGE_SIZE)
    criteria = compile_filters(STORE_SETTLEMENT_FILTERS, params)

    q = _joined_query(db).filter(Settlement.is_active.is_(True), Settlement.store_id == sid, *criteria)
    rows, total = fetch_page(q, page, Settlement.created_at.desc(), Settlement.settlement_id.desc())
    stats = _totals(db, Settlement.store_id == sid)
    return list_envelope("settlements", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/store/{store_id}/info")
def store_settlement_info(store_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    store = load_or_404(db, Store, parse_id_or_400(store_id, "store"), "Store not found")
    stats = _totals(db, Settlement.store_id == store.id)
    stats.update(
        collect_stats(
            db,
            Settlement.is_active.is_(True),
            Settlement.store_id == store.id,
            totalSettledAmount=zero_if_null(func.sum(Settlement.settled_amount)),
            totalPendingAmount=zero_if_null(func.sum(Settlement.pending_amount)),
            lastSettlementDate=func.max(Settlement.settlement_date),
        )
    )
    return item_envelope({"store": flatten_row(store), "stats": stats})


@router.get("/{settlement_id}")
def get_settlement(settlement_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    settlement = _load_settlement(db, settlement_id)
    related = (
        _joined_query(db)
        .filter(
            Settlement.is_active.is_(True),
            Settlement.store_id == settlement.store_id,
            Settlement.settlement_id != settlement.settlement_id,
        )
        .order_by(Settlement.created_at.desc(), Settlement.settlement_id.desc())
        .limit(10)
        .all()
    )
    return item_envelope(
        {
            "settlement": _settlement_out(db, settlement.settlement_id),
            "relatedSettlements": [flatten_row(r) for r in related],
        }
    )


@router.post("", status_code=201)
def create_settlement(payload: SettlementCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    data = payload.model_dump(include=set(SETTLEMENT_FIELDS), exclude_none=True)
    _check_references(db, data)
    data["settlement_status"] = normalize_settlement_status(data.get("settlement_status") or "pending")

    if "commission_amount" not in data:
        data["commission_amount"] = (data["bill_amount"] * data["commission_percentage"] / _HUNDRED).quantize(
            Decimal("0.01")
        )
    if "net_settlement_amount" not in data:
        data["net_settlement_amount"] = (
            data["settlement_amount"]
            - data.get("tax_amount", Decimal("0"))
            - data.get("processing_fee", Decimal("0"))
            + data.get("extra_paid_amount", Decimal("0"))
        )
    data.setdefault("final_amount", data["bill_amount"])
    data.setdefault("pending_amount", data["net_settlement_amount"] - data.get("settled_amount", Decimal("0")))
    if data.get("processed_by") is not None:
        data["processed_at"] = utcnow()

    settlement = Settlement(**data)
    with transaction(db, label="create_settlement"):
        db.add(settlement)
    return item_envelope(
        {"settlement": _settlement_out(db, settlement.settlement_id)},
        message="Settlement created successfully",
    )


@router.put("/{settlement_id}")
def update_settlement(
    settlement_id: str,
    payload: SettlementUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    settlement = _load_settlement(db, settlement_id)
    data = changed_fields(
        payload,
        allowed=SETTLEMENT_FIELDS,
        not_null=("store_id", "user_id", "bill_amount", "commission_percentage", "settlement_amount", "settlement_status"),
    )
    _check_references(db, data)
    if "settlement_status" in data:
        data["settlement_status"] = normalize_settlement_status(data["settlement_status"])
        check_settlement_transition(settlement.settlement_status, data["settlement_status"])
    if "processed_by" in data and data["processed_by"] != settlement.processed_by:
        data["processed_at"] = utcnow() if data["processed_by"] is not None else None
    with transaction(db, label="update_settlement"):
        apply_fields(settlement, data)
    return item_envelope(
        {"settlement": _settlement_out(db, settlement.settlement_id)},
        message="Settlement updated successfully",
    )


@router.patch("/{settlement_id}")
def change_settlement_status(
    settlement_id: str,
    payload: SettlementStatusChange,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    settlement = _load_settlement(db, settlement_id)
    target = normalize_settlement_status(payload.settlement_status)
    check_settlement_transition(settlement.settlement_status, target)
    with transaction(db, label="settlement_status"):
        settlement.settlement_status = target
    return message_envelope(
        f"Settlement status updated to {target}",
        data={"id": settlement.settlement_id, "settlement_status": target},
    )


@router.delete("/{settlement_id}")
def delete_settlement(settlement_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    settlement = _load_settlement(db, settlement_id)
    if settlement.settlement_status == "completed":
        raise DependencyError("Cannot delete completed settlements. Consider cancelling instead.")
    with transaction(db, label="delete_settlement"):
        settlement.is_active = False
    return message_envelope("Settlement deleted successfully")
