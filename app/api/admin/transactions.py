from __future__ import annotations

import secrets
import time
from datetime import timedelta

from fastapi import APIRouter, Depends, Request
from sqlalchemy import Date, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import ConflictError, DependencyError, NotFoundError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.common import utcnow
from app.models.coupon import Coupon
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.transactions import (
    PAYMENT_STATUSES,
    TRANSACTION_FIELDS,
    PaymentStatusChange,
    TransactionCreate,
    TransactionUpdate,
)
from app.services.aggregates import collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.lookups import search_coupons, search_stores, search_users
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, exists, load_or_404
from app.services.universal_query import Equals, InSet, Like, Range, as_int, compile_filters

router = APIRouter()

LOCKED_STATUSES = ("completed", "refunded")

TRANSACTION_FILTERS = (
    Like(
        "search",
        (
            Transaction.transaction_number,
            Transaction.payment_status,
            Store.name,
            Store.email,
            Store.phone_number,
            User.first_name,
            User.last_name,
            User.email,
            User.phone_number,
            Coupon.code,
        ),
    ),
    Equals("store_id", Transaction.store_id, coerce=as_int),
    Equals("user_id", Transaction.user_id, coerce=as_int),
    InSet("payment_status", Transaction.payment_status, allowed=frozenset(PAYMENT_STATUSES)),
    Equals("payment_method", Transaction.payment_method),
    Range("date_from", "date_to", Transaction.created_at),
)


def _joined_query(db: Session):
    return (
        db.query(
            Transaction,
            Store.name.label("store_name"),
            (User.first_name + " " + User.last_name).label("user_name"),
            User.email.label("user_email"),
            User.phone_number.label("user_phone"),
            Coupon.code.label("coupon_code"),
        )
        .outerjoin(Store, Store.id == Transaction.store_id)
        .outerjoin(User, User.id == Transaction.user_id)
        .outerjoin(Coupon, Coupon.id == Transaction.coupon_id)
    )


def _load_transaction(db: Session, raw_id: str) -> Transaction:
    return load_or_404(db, Transaction, parse_id_or_400(raw_id, "transaction"), "Transaction not found")


def generate_transaction_number() -> str:
    return f"TXN{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


def _check_references(db: Session, data: dict) -> None:
    if data.get("store_id") is not None and not exists(
        db, Store, Store.id == data["store_id"], Store.is_active.is_(True)
    ):
        raise NotFoundError("Store not found or inactive")
    if data.get("user_id") is not None and not exists(
        db, User, User.id == data["user_id"], User.is_active.is_(True), User.deleted_at.is_(None)
    ):
        raise NotFoundError("User not found or inactive")
    if data.get("coupon_id") is not None and not exists(db, Coupon, Coupon.id == data["coupon_id"]):
        raise NotFoundError("Coupon not found")


def _parse_period(raw: str | None, default: int = 30) -> int:
    try:
        days = int(str(raw or default).strip())
    except ValueError:
        days = default
    return min(max(days, 1), 365)


@router.get("")
def list_transactions(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    criteria = compile_filters(TRANSACTION_FILTERS, params)

    q = _joined_query(db).filter(*criteria)
    rows, total = fetch_page(q, page, Transaction.created_at.desc(), Transaction.id.desc())

    stats = collect_stats(
        db,
        Transaction.payment_status != "cancelled",
        totalTransactions=func.count(Transaction.id),
        totalBillAmount=zero_if_null(func.sum(Transaction.bill_amount)),
        totalFinalAmount=zero_if_null(func.sum(Transaction.final_amount)),
        totalCashbackUsed=zero_if_null(func.sum(Transaction.cashback_used)),
        totalVendorDiscount=zero_if_null(func.sum(Transaction.vendor_discount)),
        totalCouponDiscount=zero_if_null(func.sum(Transaction.coupon_discount)),
        averageOrderValue=zero_if_null(func.avg(Transaction.final_amount)),
        uniqueUsers=func.count(func.distinct(Transaction.user_id)),
        uniqueStores=func.count(func.distinct(Transaction.store_id)),
    )
    return list_envelope("transactions", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/stats/overview")
def transactions_overview(period: str | None = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    days = _parse_period(period)
    since = utcnow() - timedelta(days=days)
    in_period = Transaction.created_at >= since

    overview = collect_stats(
        db,
        in_period,
        totalTransactions=func.count(Transaction.id),
        totalRevenue=zero_if_null(func.sum(Transaction.final_amount)),
        totalBillAmount=zero_if_null(func.sum(Transaction.bill_amount)),
        averageOrderValue=zero_if_null(func.avg(Transaction.final_amount)),
        uniqueUsers=func.count(func.distinct(Transaction.user_id)),
        uniqueStores=func.count(func.distinct(Transaction.store_id)),
    )
    overview["period"] = days

    day = func.date(Transaction.created_at, type_=Date)
    daily = (
        db.query(
            day.label("date"),
            func.count(Transaction.id).label("transaction_count"),
            zero_if_null(func.sum(Transaction.final_amount), "total_amount"),
        )
        .filter(in_period)
        .group_by(day)
        .order_by(day.asc())
        .all()
    )
    top_stores = (
        db.query(
            Store.id.label("store_id"),
            Store.name.label("store_name"),
            func.count(Transaction.id).label("transaction_count"),
            zero_if_null(func.sum(Transaction.final_amount), "total_amount"),
        )
        .join(Transaction, Transaction.store_id == Store.id)
        .filter(in_period)
        .group_by(Store.id, Store.name)
        .order_by(func.sum(Transaction.final_amount).desc(), Store.id.asc())
        .limit(5)
        .all()
    )
    methods = (
        db.query(
            Transaction.payment_method.label("payment_method"),
            func.count(Transaction.id).label("transaction_count"),
            zero_if_null(func.sum(Transaction.final_amount), "total_amount"),
        )
        .filter(in_period)
        .group_by(Transaction.payment_method)
        .order_by(func.count(Transaction.id).desc())
        .all()
    )
    return item_envelope(
        {
            "overview": overview,
            "dailyTrends": [flatten_row(r) for r in daily],
            "topStores": [flatten_row(r) for r in top_stores],
            "paymentMethods": [flatten_row(r) for r in methods],
        }
    )


@router.get("/search/users")
def lookup_users(q: str | None = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope(search_users(db, q))


@router.get("/search/stores")
def lookup_stores(q: str | None = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope(search_stores(db, q))


@router.get("/search/coupons")
def lookup_coupons(q: str | None = None, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope(search_coupons(db, q))


@router.get("/{transaction_id}")
def get_transaction(transaction_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    txn = _load_transaction(db, transaction_id)
    row = _joined_query(db).filter(Transaction.id == txn.id).first()
    related = (
        db.query(Transaction, Store.name.label("store_name"))
        .outerjoin(Store, Store.id == Transaction.store_id)
        .filter(
            Transaction.user_id == txn.user_id,
            Transaction.store_id == txn.store_id,
            Transaction.id != txn.id,
        )
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(10)
        .all()
    )
    return item_envelope(
        {"transaction": flatten_row(row), "relatedTransactions": [flatten_row(r) for r in related]}
    )


@router.post("", status_code=201)
def create_transaction(payload: TransactionCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    data = payload.model_dump(include=set(TRANSACTION_FIELDS), exclude_none=True)
    _check_references(db, data)
    if "transaction_number" in data:
        if exists(db, Transaction, Transaction.transaction_number == data["transaction_number"]):
            raise ConflictError("Transaction number already exists")
    else:
        data["transaction_number"] = generate_transaction_number()

    txn = Transaction(**data)
    with transaction(db, label="create_transaction", conflict_message="Transaction number already exists"):
        db.add(txn)
    db.refresh(txn)
    row = _joined_query(db).filter(Transaction.id == txn.id).first()
    return item_envelope({"transaction": flatten_row(row)}, message="Transaction created successfully")


@router.put("/{transaction_id}")
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    txn = _load_transaction(db, transaction_id)
    data = changed_fields(
        payload,
        allowed=TRANSACTION_FIELDS,
        not_null=(
            "transaction_number",
            "store_id",
            "user_id",
            "bill_amount",
            "final_amount",
            "payment_method",
            "payment_status",
        ),
    )
    _check_references(db, data)
    number = data.get("transaction_number")
    if number and exists(db, Transaction, Transaction.transaction_number == number, Transaction.id != txn.id):
        raise ConflictError("Transaction number already exists")
    with transaction(db, label="update_transaction", conflict_message="Transaction number already exists"):
        apply_fields(txn, data)
    db.refresh(txn)
    return item_envelope({"transaction": flatten_row(txn)}, message="Transaction updated successfully")


@router.patch("/{transaction_id}")
def change_payment_status(
    transaction_id: str,
    payload: PaymentStatusChange,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    txn = _load_transaction(db, transaction_id)
    with transaction(db, label="transaction_status"):
        txn.payment_status = payload.payment_status
    return message_envelope(
        f"Transaction status updated to {payload.payment_status}",
        data={"id": txn.id, "payment_status": payload.payment_status},
    )


@router.delete("/{transaction_id}")
def delete_transaction(transaction_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    txn = _load_transaction(db, transaction_id)
    if txn.payment_status in LOCKED_STATUSES:
        raise DependencyError("Cannot delete completed or refunded transactions")
    with transaction(db, label="delete_transaction"):
        db.delete(txn)
    return message_envelope("Transaction deleted successfully")
