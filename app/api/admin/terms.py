from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.terms_condition import TermsCondition
from app.schemas.common import ActiveToggle
from app.schemas.content import TERMS_FIELDS, TermsCreate, TermsUpdate
from app.services.aggregates import collect_stats
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, load_or_404
from app.services.universal_query import Equals, Like, as_flag, compile_filters

router = APIRouter()

TERMS_FILTERS = (
    Like("search", (TermsCondition.title, TermsCondition.description)),
    Equals("status", TermsCondition.is_active, coerce=as_flag),
)


def _load_terms(db: Session, raw_id: str) -> TermsCondition:
    return load_or_404(db, TermsCondition, parse_id_or_400(raw_id, "terms"), "Terms and conditions not found")


@router.get("")
def list_terms(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    q = db.query(TermsCondition).filter(*compile_filters(TERMS_FILTERS, params))
    rows, total = fetch_page(q, page, TermsCondition.created_at.desc(), TermsCondition.id.desc())
    stats = collect_stats(
        db,
        totalTerms=func.count(TermsCondition.id),
        activeTerms=func.count(case((TermsCondition.is_active.is_(True), TermsCondition.id))),
    )
    return list_envelope("terms", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/{terms_id}")
def get_terms(terms_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    return item_envelope({"terms": flatten_row(_load_terms(db, terms_id))})


@router.post("", status_code=201)
def create_terms(payload: TermsCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    terms = TermsCondition(**payload.model_dump(include=set(TERMS_FIELDS), exclude_none=True))
    with transaction(db, label="create_terms"):
        db.add(terms)
    db.refresh(terms)
    return item_envelope({"terms": flatten_row(terms)}, message="Terms and conditions created successfully")


@router.put("/{terms_id}")
def update_terms(terms_id: str, payload: TermsUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    terms = _load_terms(db, terms_id)
    data = changed_fields(payload, allowed=TERMS_FIELDS, not_null=TERMS_FIELDS)
    with transaction(db, label="update_terms"):
        apply_fields(terms, data)
    db.refresh(terms)
    return item_envelope({"terms": flatten_row(terms)}, message="Terms and conditions updated successfully")


@router.patch("/{terms_id}")
def toggle_terms(terms_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    terms = _load_terms(db, terms_id)
    with transaction(db, label="toggle_terms"):
        terms.is_active = payload.is_active
    state = "activated" if payload.is_active else "deactivated"
    return message_envelope(
        f"Terms and conditions {state} successfully",
        data={"id": terms.id, "is_active": payload.is_active},
    )


@router.delete("/{terms_id}")
def delete_terms(terms_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    terms = _load_terms(db, terms_id)
    with transaction(db, label="delete_terms"):
        db.delete(terms)
    return message_envelope("Terms and conditions deleted successfully")
