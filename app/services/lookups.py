"""Typeahead lookups shared by the transaction, settlement and campaign screens."""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models.common import utcnow
from app.models.coupon import Coupon
from app.models.store import Store
from app.models.user import User
from app.services.universal_query import escape_like

MIN_TERM_LENGTH = 2
DEFAULT_LOOKUP_LIMIT = 10


def _pattern(term: str) -> str:
    return f"%{escape_like(term)}%"


def _usable_term(raw: str | None, min_length: int = MIN_TERM_LENGTH) -> str | None:
    term = (raw or "").strip()
    return term if term and len(term) >= min_length else None


def search_users(db: Session, raw: str | None, limit: int = DEFAULT_LOOKUP_LIMIT) -> list[dict]:
    term = _usable_term(raw)
    if term is None:
        return []
    pattern = _pattern(term)
    rows = (
        db.query(User)
        .filter(
            User.deleted_at.is_(None),
            User.is_active.is_(True),
            or_(*[col.ilike(pattern, escape="\\") for col in (User.first_name, User.last_name, User.email, User.phone_number)]),
        )
        .order_by(User.first_name.asc(), User.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": u.id,
            "name": f"{u.first_name} {u.last_name}",
            "email": u.email,
            "phone_number": u.phone_number,
        }
        for u in rows
    ]


def search_stores(db: Session, raw: str | None, limit: int = DEFAULT_LOOKUP_LIMIT) -> list[dict]:
    term = _usable_term(raw)
    if term is None:
        return []
    pattern = _pattern(term)
    rows = (
        db.query(Store)
        .filter(
            Store.is_active.is_(True),
            or_(*[col.ilike(pattern, escape="\\") for col in (Store.name, Store.email, Store.phone_number)]),
        )
        .order_by(Store.name.asc(), Store.id.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "id": s.id,
            "name": s.name,
            "email": s.email,
            "phone_number": s.phone_number,
            "commission_percent": float(s.commission_percent or 0),
        }
        for s in rows
    ]


def search_coupons(
    db: Session,
    raw: str | None,
    limit: int = DEFAULT_LOOKUP_LIMIT,
    currently_valid: bool = False,
    min_length: int = MIN_TERM_LENGTH,
) -> list[dict]:
    """Coupons whose code or title contains the term.

    With ``currently_valid`` only active coupons inside their validity window
    are returned.
    """
    term = _usable_term(raw, min_length)
    if term is None:
        return []
    pattern = _pattern(term)
    criteria = [or_(Coupon.code.ilike(pattern, escape="\\"), Coupon.title.ilike(pattern, escape="\\"))]
    if currently_valid:
        now = utcnow()
        criteria += [Coupon.is_active.is_(True), Coupon.valid_from <= now, Coupon.valid_until >= now]
    rows = db.query(Coupon).filter(*criteria).order_by(Coupon.code.asc()).limit(limit).all()
    return [
        {
            "id": c.id,
            "code": c.code,
            "title": c.title,
            "discount_amount": float(c.discount_amount) if c.discount_amount is not None else None,
            "discount_percentage": float(c.discount_percentage) if c.discount_percentage is not None else None,
        }
        for c in rows
    ]
