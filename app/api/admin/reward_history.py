from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import require_admin
from app.core.errors import parse_id_or_400
from app.db.session import get_db
from app.models.reward_history import RewardHistory
from app.models.reward_type import RewardType
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.user import User
from app.services.aggregates import collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import load_or_404
from app.services.universal_query import Equals, InSet, Like, Range, as_int, compile_filters

router = APIRouter()

_credit = RewardHistory.credit_debit == "credit"
_debit = RewardHistory.credit_debit == "debit"


def _reward_names(db: Session):
    # reward_type codes are not unique across reward types; keep one name per code.
    return (
        db.query(RewardType.reward_type.label("code"), func.min(RewardType.reward_name).label("reward_name"))
        .group_by(RewardType.reward_type)
        .subquery("reward_names")
    )


def _history_query(db: Session):
    names = _reward_names(db)
    q = (
        db.query(
            RewardHistory,
            User.first_name.label("user_first_name"),
            User.last_name.label("user_last_name"),
            User.email.label("user_email"),
            User.phone_number.label("user_phone"),
            Store.name.label("store_name"),
            Transaction.transaction_number.label("transaction_number"),
            Transaction.bill_amount.label("bill_amount"),
            Transaction.final_amount.label("final_amount"),
            names.c.reward_name.label("reward_name"),
        )
        .outerjoin(User, User.id == RewardHistory.user_id)
        .outerjoin(Store, Store.id == RewardHistory.store_id)
        .outerjoin(Transaction, Transaction.id == RewardHistory.transaction_id)
        .outerjoin(names, names.c.code == RewardHistory.reward_type)
    )
    return q, names


def history_filters(names) -> tuple:
    return (
        Like(
            "search",
            (
                User.first_name,
                User.last_name,
                User.email,
                User.phone_number,
                Store.name,
                Transaction.transaction_number,
                RewardHistory.description,
                names.c.reward_name,
            ),
        ),
        InSet("credit_debit", RewardHistory.credit_debit, allowed=frozenset({"credit", "debit"})),
        Equals("reward_type", RewardHistory.reward_type),
        Equals("user_id", RewardHistory.user_id, coerce=as_int),
        Range("date_from", "date_to", RewardHistory.created_at),
    )


@router.get("")
def list_history(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"), max_limit=settings.MAX_HISTORY_PAGE_SIZE)
    q, names = _history_query(db)
    q = q.filter(*compile_filters(history_filters(names), params))
    rows, total = fetch_page(q, page, RewardHistory.created_at.desc(), RewardHistory.id.desc())

    stats = collect_stats(
        db,
        totalHistory=func.count(RewardHistory.id),
        uniqueUsers=func.count(func.distinct(RewardHistory.user_id)),
        totalCredits=zero_if_null(func.sum(case((_credit, RewardHistory.amount), else_=0))),
        totalDebits=zero_if_null(func.sum(case((_debit, RewardHistory.amount), else_=0))),
        creditCount=func.count(case((_credit, RewardHistory.id))),
        debitCount=func.count(case((_debit, RewardHistory.id))),
    )
    return list_envelope("history", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/{history_id}")
def get_history_entry(history_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    entry = load_or_404(db, RewardHistory, parse_id_or_400(history_id, "history"), "Reward history not found")
    q, _ = _history_query(db)
    return item_envelope({"history": flatten_row(q.filter(RewardHistory.id == entry.id).first())})
