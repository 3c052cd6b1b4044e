from __future__ import annotations

from datetime import timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import ConflictError, DependencyError, ValidationError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import run_in_transaction, transaction
from app.models.common import utcnow
from app.models.coupon import Coupon
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.user import User
from app.models.user_coupon import UserCoupon
from app.schemas.common import ActiveToggle
from app.schemas.coupons import COUPON_FIELDS, CouponCreate, CouponUpdate
from app.services.aggregates import GroupedAggregate, collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, count_where, exists, load_or_404
from app.services.universal_query import Equals, InSet, Like, as_int, compile_filters

router = APIRouter()


def _status_filter() -> InSet:
    now = utcnow()
    return InSet(
        "status",
        predicates={
            "active": lambda: Coupon.is_active.is_(True) & (Coupon.valid_until >= now),
            "expired": lambda: Coupon.valid_until < now,
            "inactive": lambda: Coupon.is_active.is_(False),
            "upcoming": lambda: Coupon.is_active.is_(True) & (Coupon.valid_from > now),
        },
    )


def coupon_filters() -> tuple:
    return (
        Like("search", (Coupon.code, Coupon.title, Coupon.description, Store.name)),
        _status_filter(),
        Equals("store_id", Coupon.store_id, coerce=as_int, null_token="global"),
    )


def _usage_totals(db: Session) -> GroupedAggregate:
    return GroupedAggregate(
        db,
        UserCoupon.coupon_id,
        "coupon_usage_totals",
        total_used=func.count(UserCoupon.id),
        total_redeemed=func.count(case((UserCoupon.is_used.is_(True), UserCoupon.id))),
    )


def _coupon_query(db: Session):
    totals = _usage_totals(db)
    q = db.query(Coupon, Store.name.label("store_name"), *totals.columns())
    q = q.outerjoin(Store, Store.id == Coupon.store_id)
    return totals.join(q, Coupon.id)


def _load_coupon(db: Session, raw_id: str) -> Coupon:
    return load_or_404(db, Coupon, parse_id_or_400(raw_id, "coupon"), "Coupon not found")


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _check_coupon(db: Session, data: dict, exclude_id: int | None = None) -> None:
    """Cross-field rules shared by create and update; ``data`` holds effective values."""
    amount = data.get("discount_amount")
    percentage = data.get("discount_percentage")
    if amount is None and percentage is None:
        raise ValidationError("Either discount_amount or discount_percentage must be provided")
    if amount is not None and percentage is not None:
        raise ValidationError("Cannot have both discount_amount and discount_percentage")
    if amount is not None and amount <= 0:
        raise ValidationError("Discount amount must be greater than 0")
    if percentage is not None and not (0 < percentage <= 100):
        raise ValidationError("Discount percentage must be between 0 and 100")
    if _aware(data["valid_until"]) <= _aware(data["valid_from"]):
        raise ValidationError("valid_until must be after valid_from")

    code_taken = [Coupon.code == data["code"]]
    if exclude_id is not None:
        code_taken.append(Coupon.id != exclude_id)
    if exists(db, Coupon, *code_taken):
        raise ConflictError("Coupon code already exists")
    if data.get("store_id") is not None and not exists(db, Store, Store.id == data["store_id"]):
        raise ValidationError("Invalid store_id")


def _coupon_out(db: Session, coupon_id: int) -> dict:
    return flatten_row(_coupon_query(db).filter(Coupon.id == coupon_id).first())


@router.get("")
def list_coupons(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    criteria = compile_filters(coupon_filters(), params)

    q = _coupon_query(db).filter(*criteria)
    rows, total = fetch_page(q, page, Coupon.created_at.desc(), Coupon.id.desc())

    now = utcnow()
    stats = collect_stats(
        db,
        totalCoupons=func.count(Coupon.id),
        activeCoupons=func.count(case(((Coupon.is_active.is_(True)) & (Coupon.valid_until >= now), Coupon.id))),
    )
    stats["totalRedemptions"] = count_where(db, UserCoupon.id, UserCoupon.is_used.is_(True))
    stats.update(
        collect_stats(
            db,
            Transaction.coupon_id.isnot(None),
            totalSavings=zero_if_null(func.sum(Transaction.coupon_discount)),
        )
    )
    return list_envelope("coupons", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/{coupon_id}")
def get_coupon(coupon_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    coupon = _load_coupon(db, coupon_id)
    user_name = (User.first_name + " " + User.last_name).label("user_name")
    usages = (
        db.query(
            UserCoupon,
            user_name,
            User.email.label("user_email"),
            Transaction.transaction_number.label("transaction_number"),
            Transaction.bill_amount.label("order_amount"),
            Transaction.coupon_discount.label("discount_applied"),
        )
        .outerjoin(User, User.id == UserCoupon.user_id)
        .outerjoin(Transaction, Transaction.id == UserCoupon.transaction_id)
        .filter(UserCoupon.coupon_id == coupon.id, UserCoupon.is_used.is_(True))
        .order_by(UserCoupon.used_at.desc(), UserCoupon.id.desc())
        .all()
    )
    users = (
        db.query(UserCoupon, user_name, User.email.label("user_email"))
        .outerjoin(User, User.id == UserCoupon.user_id)
        .filter(UserCoupon.coupon_id == coupon.id)
        .order_by(UserCoupon.created_at.desc(), UserCoupon.id.desc())
        .all()
    )
    return item_envelope(
        {
            "coupon": _coupon_out(db, coupon.id),
            "usages": [flatten_row(r) for r in usages],
            "users": [flatten_row(r) for r in users],
        }
    )


@router.post("", status_code=201)
def create_coupon(payload: CouponCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    data = payload.model_dump(include=set(COUPON_FIELDS), exclude_none=True)
    _check_coupon(db, data)
    coupon = Coupon(**data)
    with transaction(db, label="create_coupon", conflict_message="Coupon code already exists"):
        db.add(coupon)
    return item_envelope({"coupon": _coupon_out(db, coupon.id)}, message="Coupon created successfully")


@router.put("/{coupon_id}")
def update_coupon(coupon_id: str, payload: CouponUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    coupon = _load_coupon(db, coupon_id)
    data = changed_fields(
        payload,
        allowed=COUPON_FIELDS,
        not_null=("code", "title", "valid_from", "valid_until", "is_active"),
    )
    effective = {key: getattr(coupon, key) for key in COUPON_FIELDS}
    effective.update(data)
    _check_coupon(db, effective, exclude_id=coupon.id)
    with transaction(db, label="update_coupon", conflict_message="Coupon code already exists"):
        apply_fields(coupon, data)
    return item_envelope({"coupon": _coupon_out(db, coupon.id)}, message="Coupon updated successfully")


@router.patch("/{coupon_id}")
def toggle_coupon(coupon_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    coupon = _load_coupon(db, coupon_id)
    with transaction(db, label="toggle_coupon"):
        coupon.is_active = payload.is_active
    message = "Coupon activated successfully" if payload.is_active else "Coupon deactivated successfully"
    return message_envelope(message, data={"id": coupon.id, "is_active": payload.is_active})


@router.delete("/{coupon_id}")
def delete_coupon(coupon_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    coupon = _load_coupon(db, coupon_id)
    if count_where(db, UserCoupon.id, UserCoupon.coupon_id == coupon.id, UserCoupon.is_used.is_(True)):
        raise DependencyError("Cannot delete coupon that has been used. Consider deactivating instead.")

    def drop_assignments(session: Session, state: dict) -> None:
        state["unassigned"] = (
            session.query(UserCoupon).filter(UserCoupon.coupon_id == coupon.id).delete(synchronize_session=False)
        )

    def drop_coupon(session: Session, state: dict) -> None:
        session.delete(coupon)

    run_in_transaction(db, (drop_assignments, drop_coupon), label="delete_coupon")
    return message_envelope("Coupon deleted successfully")
