from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import Date, case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.db.session import get_db
from app.models.common import utcnow
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.user import User
from app.services.aggregates import collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope

router = APIRouter()

TRANSACTION_WINDOW_DAYS = 30


def user_analytics(db: Session) -> dict:
    now = utcnow()
    return collect_stats(
        db,
        User.deleted_at.is_(None),
        total_users=func.count(User.id),
        verified_users=func.count(case((User.is_email_verified.is_(True), User.id))),
        new_users_30_days=func.count(case((User.created_at >= now - timedelta(days=30), User.id))),
        new_users_7_days=func.count(case((User.created_at >= now - timedelta(days=7), User.id))),
    )


def transaction_analytics(db: Session, days: int = TRANSACTION_WINDOW_DAYS) -> dict:
    in_window = Transaction.created_at >= utcnow() - timedelta(days=days)

    def with_status(status: str):
        return func.count(case((Transaction.payment_status == status, Transaction.id)))

    stats = collect_stats(
        db,
        in_window,
        total_transactions=func.count(Transaction.id),
        successful_transactions=with_status("completed"),
        pending_transactions=with_status("pending"),
        failed_transactions=with_status("failed"),
        total_revenue=zero_if_null(func.sum(Transaction.final_amount)),
        avg_transaction_value=zero_if_null(func.avg(Transaction.final_amount)),
    )
    day = func.date(Transaction.created_at, type_=Date)
    daily = (
        db.query(
            day.label("date"),
            func.count(Transaction.id).label("transaction_count"),
            zero_if_null(func.sum(Transaction.final_amount), "revenue"),
        )
        .filter(in_window)
        .group_by(day)
        .order_by(day.asc())
        .all()
    )
    stats["dailyRevenue"] = [flatten_row(r) for r in daily]
    return stats


def store_analytics(db: Session) -> dict:
    stats = collect_stats(
        db,
        total_stores=func.count(Store.id),
        active_stores=func.count(case((Store.is_active.is_(True), Store.id))),
        partner_stores=func.count(case((Store.is_premium.is_(True), Store.id))),
        avg_rating=zero_if_null(func.avg(Store.rating)),
        total_reviews=zero_if_null(func.sum(Store.total_reviews)),
    )
    stats["avg_rating"] = round(float(stats["avg_rating"]), 1)
    stats.update(
        collect_stats(
            db,
            Transaction.payment_status == "completed",
            stores_with_transactions=func.count(func.distinct(Transaction.store_id)),
            unique_customers=func.count(func.distinct(Transaction.user_id)),
        )
    )
    return stats


@router.get("/overview")
def dashboard_overview(db: Session = Depends(get_db), admin=Depends(require_admin)):
    users = user_analytics(db)
    transactions = transaction_analytics(db)
    stores = store_analytics(db)
    return item_envelope(
        {
            "users": users,
            "transactions": transactions,
            "stores": stores,
            "overview": {
                "totalUsers": users["total_users"],
                "totalStores": stores["total_stores"],
                "totalTransactions": transactions["total_transactions"],
                "totalRevenue": transactions["total_revenue"],
            },
        }
    )
