from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, extract, func
from sqlalchemy.orm import Session, join

from app.core.deps import require_admin
from app.core.errors import ConflictError, DependencyError, ValidationError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.category import Category
from app.models.common import utcnow
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.user import User
from app.schemas.common import ActiveToggle
from app.schemas.stores import STORE_FIELDS, StoreCreate, StoreUpdate
from app.services.aggregates import GroupedAggregate, collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, count_where, exists, load_or_404
from app.services.universal_query import Equals, Like, as_flag, as_int, compile_filters

router = APIRouter()

STORE_FILTERS = (
    Like("search", (Store.name, Store.email, Store.phone_number, Store.address, Store.sub_category)),
    Equals("category_id", Store.category_id, coerce=as_int),
    Equals("is_premium", Store.is_premium, coerce=as_flag),
    Equals("is_active", Store.is_active, coerce=as_flag, default="1"),
)


def _store_totals(db: Session) -> GroupedAggregate:
    return GroupedAggregate(
        db,
        Transaction.store_id,
        "store_transaction_totals",
        total_transactions=func.count(Transaction.id),
        total_bill_amount=func.sum(Transaction.bill_amount),
        total_final_amount=func.sum(Transaction.final_amount),
        average_order_value=func.avg(Transaction.final_amount),
        unique_customers=func.count(func.distinct(Transaction.user_id)),
    )


def _store_query(db: Session, totals: GroupedAggregate):
    q = db.query(Store, Category.name.label("category_name"), *totals.columns())
    q = q.outerjoin(Category, Category.id == Store.category_id)
    return totals.join(q, Store.id)


def _load_store(db: Session, raw_id: str) -> Store:
    return load_or_404(db, Store, parse_id_or_400(raw_id, "store"), "Store not found")


def _ensure_category(db: Session, category_id: int) -> None:
    if not exists(db, Category, Category.id == category_id, Category.is_active.is_(True)):
        raise ValidationError("Invalid category")


def _ensure_unique_email(db: Session, email: str, exclude_id: int | None = None) -> None:
    criteria = [Store.email == email, Store.is_active.is_(True)]
    if exclude_id is not None:
        criteria.append(Store.id != exclude_id)
    if exists(db, Store, *criteria):
        raise ConflictError("Store with this email already exists")


@router.get("")
def list_stores(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    criteria = compile_filters(STORE_FILTERS, params)

    q = _store_query(db, _store_totals(db)).filter(*criteria)
    rows, total = fetch_page(q, page, Store.created_at.desc(), Store.id.desc())

    active = Store.is_active.is_(True)
    stats = collect_stats(
        db,
        active,
        totalStores=func.count(Store.id),
        partnerStores=func.count(case((Store.is_premium.is_(True), Store.id))),
        averageRating=zero_if_null(func.avg(Store.rating)),
    )
    stats.update(
        collect_stats(
            db,
            active,
            select_from=join(Transaction, Store, Store.id == Transaction.store_id),
            totalTransactions=func.count(Transaction.id),
            totalBillAmount=zero_if_null(func.sum(Transaction.bill_amount)),
            totalFinalAmount=zero_if_null(func.sum(Transaction.final_amount)),
        )
    )
    return list_envelope("stores", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/categories/list")
def list_categories(db: Session = Depends(get_db), admin=Depends(require_admin)):
    counts = GroupedAggregate(
        db,
        Store.category_id,
        "category_store_counts",
        criteria=(Store.is_active.is_(True),),
        store_count=func.count(Store.id),
    )
    q = counts.join(db.query(Category, *counts.columns()), Category.id)
    rows = q.filter(Category.is_active.is_(True)).order_by(Category.name.asc()).all()
    return item_envelope([flatten_row(r) for r in rows])


@router.get("/{store_id}")
def get_store(store_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    store = _load_store(db, store_id)
    row = _store_query(db, _store_totals(db)).filter(Store.id == store.id).first()

    recent = (
        db.query(
            Transaction,
            (User.first_name + " " + User.last_name).label("user_name"),
            User.email.label("user_email"),
        )
        .outerjoin(User, User.id == Transaction.user_id)
        .filter(Transaction.store_id == store.id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(20)
        .all()
    )

    year = extract("year", Transaction.created_at)
    month = extract("month", Transaction.created_at)
    monthly = (
        db.query(
            year.label("year"),
            month.label("month"),
            func.count(Transaction.id).label("transaction_count"),
            zero_if_null(func.sum(Transaction.final_amount), "total_amount"),
            func.count(func.distinct(Transaction.user_id)).label("unique_customers"),
        )
        .filter(Transaction.store_id == store.id, Transaction.created_at >= utcnow() - timedelta(days=365))
        .group_by(year, month)
        .order_by(year.desc(), month.desc())
        .all()
    )
    monthly_stats = [
        {
            "month": f"{int(r.year):04d}-{int(r.month):02d}",
            "transaction_count": r.transaction_count,
            "total_amount": float(r.total_amount or 0),
            "unique_customers": r.unique_customers,
        }
        for r in monthly
    ]
    return item_envelope(
        {
            "store": flatten_row(row),
            "recentTransactions": [flatten_row(r) for r in recent],
            "monthlyStats": monthly_stats,
        }
    )


@router.post("", status_code=201)
def create_store(payload: StoreCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    _ensure_category(db, payload.category_id)
    _ensure_unique_email(db, payload.email)
    store = Store(**payload.model_dump(include=set(STORE_FIELDS), exclude_none=True))
    with transaction(db, label="create_store", conflict_message="Store with this email already exists"):
        db.add(store)
    db.refresh(store)
    return item_envelope({"store": flatten_row(store)}, message="Store created successfully")


@router.put("/{store_id}")
def update_store(store_id: str, payload: StoreUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    store = _load_store(db, store_id)
    data = changed_fields(
        payload,
        allowed=STORE_FIELDS,
        not_null=("name", "category_id", "phone_number", "email", "address", "is_premium", "is_active"),
    )
    if "category_id" in data:
        _ensure_category(db, data["category_id"])
    if "email" in data:
        _ensure_unique_email(db, data["email"], exclude_id=store.id)
    with transaction(db, label="update_store"):
        apply_fields(store, data)
    db.refresh(store)
    return item_envelope({"store": flatten_row(store)}, message="Store updated successfully")


@router.patch("/{store_id}")
def toggle_store(store_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    store = _load_store(db, store_id)
    with transaction(db, label="toggle_store"):
        store.is_active = payload.is_active
    message = "Store activated successfully" if payload.is_active else "Store deactivated successfully"
    return message_envelope(message, data={"id": store.id, "is_active": payload.is_active})


@router.delete("/{store_id}")
def delete_store(store_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    store = _load_store(db, store_id)
    if count_where(db, Transaction.id, Transaction.store_id == store.id):
        raise DependencyError("Cannot delete store with existing transactions")
    with transaction(db, label="delete_store"):
        store.is_active = False
    return message_envelope("Store deleted successfully")
