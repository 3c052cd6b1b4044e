from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.faq import Faq
from app.schemas.common import ActiveToggle
from app.schemas.content import FAQ_FIELDS, FaqCreate, FaqUpdate
from app.services.aggregates import collect_stats
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, load_or_404
from app.services.universal_query import Equals, Like, as_flag, compile_filters

router = APIRouter()

FAQ_FILTERS = (
    Like("search", (Faq.question, Faq.answer, Faq.category)),
    Equals("category", Faq.category),
    Equals("status", Faq.is_active, coerce=as_flag),
)


def _load_faq(db: Session, raw_id: str) -> Faq:
    return load_or_404(db, Faq, parse_id_or_400(raw_id, "FAQ"), "FAQ not found")


@router.get("")
def list_faqs(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    q = db.query(Faq).filter(*compile_filters(FAQ_FILTERS, params))
    rows, total = fetch_page(q, page, Faq.display_order.asc(), Faq.created_at.desc(), Faq.id.desc())
    stats = collect_stats(
        db,
        totalFaqs=func.count(Faq.id),
        activeFaqs=func.count(case((Faq.is_active.is_(True), Faq.id))),
        categories=func.count(func.distinct(Faq.category)),
    )
    return list_envelope("faqs", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/categories/list")
def list_faq_categories(db: Session = Depends(get_db), admin=Depends(require_admin)):
    rows = (
        db.query(Faq.category.label("category"), func.count(Faq.id).label("faq_count"))
        .group_by(Faq.category)
        .order_by(Faq.category.asc())
        .all()
    )
    return item_envelope([flatten_row(r) for r in rows])


@router.get("/{faq_id}")
def get_faq(faq_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope({"faq": flatten_row(_load_faq(db, faq_id))})


@router.post("", status_code=201)
def create_faq(payload: FaqCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    faq = Faq(**payload.model_dump(include=set(FAQ_FIELDS), exclude_none=True))
    with transaction(db, label="create_faq"):
        db.add(faq)
    db.refresh(faq)
    return item_envelope({"faq": flatten_row(faq)}, message="FAQ created successfully")


@router.put("/{faq_id}")
def update_faq(faq_id: str, payload: FaqUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    faq = _load_faq(db, faq_id)
    data = changed_fields(payload, allowed=FAQ_FIELDS, not_null=FAQ_FIELDS)
    with transaction(db, label="update_faq"):
        apply_fields(faq, data)
    db.refresh(faq)
    return item_envelope({"faq": flatten_row(faq)}, message="FAQ updated successfully")


@router.patch("/{faq_id}")
def toggle_faq(faq_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    faq = _load_faq(db, faq_id)
    with transaction(db, label="toggle_faq"):
        faq.is_active = payload.is_active
    message = "FAQ activated successfully" if payload.is_active else "FAQ deactivated successfully"
    return message_envelope(message, data={"id": faq.id, "is_active": payload.is_active})


@router.delete("/{faq_id}")
def delete_faq(faq_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    faq = _load_faq(db, faq_id)
    with transaction(db, label="delete_faq"):
        db.delete(faq)
    return message_envelope("FAQ deleted successfully")
