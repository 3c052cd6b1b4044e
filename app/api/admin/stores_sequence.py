from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import ConflictError, NotFoundError, ValidationError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.store import Store
from app.models.store_sequence import StoreSequence
from app.schemas.common import ActiveToggle
from app.schemas.stores_sequence import (
    SEQUENCE_FIELDS,
    BulkSequenceUpdate,
    StoreSequenceCreate,
    StoreSequenceUpdate,
)
from app.services.aggregates import collect_stats
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, exists, load_or_404
from app.services.universal_query import Equals, Like, as_flag, compile_filters

router = APIRouter()

SEQUENCE_FILTERS = (
    Like("search", (Store.name, Store.address)),
    Equals("status", StoreSequence.is_active, coerce=as_flag),
)


def _sequence_query(db: Session):
    return db.query(
        StoreSequence,
        Store.name.label("store_name"),
        Store.address.label("store_address"),
        Store.logo.label("store_logo"),
        Store.rating.label("store_rating"),
    ).outerjoin(Store, Store.id == StoreSequence.store_id)


def _load_sequence(db: Session, raw_id: str) -> StoreSequence:
    return load_or_404(db, StoreSequence, parse_id_or_400(raw_id, "store sequence"), "Store sequence not found")


def _sequence_out(db: Session, sequence_id: int) -> dict:
    return flatten_row(_sequence_query(db).filter(StoreSequence.id == sequence_id).first())


def _next_sequence_no(db: Session) -> int:
    return int(db.query(func.max(StoreSequence.sequence_no)).scalar() or 0) + 1


def _check_store(db: Session, store_id: int, exclude_id: int | None = None) -> None:
    if not exists(db, Store, Store.id == store_id):
        raise NotFoundError("Store not found")
    taken = [StoreSequence.store_id == store_id]
    if exclude_id is not None:
        taken.append(StoreSequence.id != exclude_id)
    if exists(db, StoreSequence, *taken):
        raise ConflictError("Store is already in the sequence")


@router.get("")
def list_sequences(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    q = _sequence_query(db).filter(*compile_filters(SEQUENCE_FILTERS, params))
    rows, total = fetch_page(q, page, StoreSequence.sequence_no.asc(), StoreSequence.id.asc())
    stats = collect_stats(
        db,
        totalStoresSequence=func.count(StoreSequence.id),
        activeStoresSequence=func.count(case((StoreSequence.is_active.is_(True), StoreSequence.id))),
    )
    return list_envelope("storesSequence", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/available/stores")
def available_stores(db: Session = Depends(get_db), admin=Depends(require_admin)):
    sequenced = select(StoreSequence.store_id)
    rows = (
        db.query(Store.id, Store.name, Store.address, Store.logo, Store.rating)
        .filter(Store.is_active.is_(True), Store.id.notin_(sequenced))
        .order_by(Store.name.asc(), Store.id.asc())
        .all()
    )
    return item_envelope([flatten_row(r) for r in rows])


@router.put("/bulk-update-sequence")
def bulk_update_sequence(payload: BulkSequenceUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    if not payload.sequences:
        raise ValidationError("Sequences array is required")
    with transaction(db, label="bulk_update_sequence"):
        for item in payload.sequences:
            row = db.query(StoreSequence).filter(StoreSequence.id == item.id).first()
            if row is None:
                raise NotFoundError(f"Store sequence with ID {item.id} not found")
            row.sequence_no = item.sequence_no
            db.flush()
    count = len(payload.sequences)
    return message_envelope(f"Successfully updated {count} store sequences", updatedCount=count)


@router.get("/{sequence_id}")
def get_sequence(sequence_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    row = _load_sequence(db, sequence_id)
    return item_envelope({"storeSequence": _sequence_out(db, row.id)})


@router.post("", status_code=201)
def create_sequence(payload: StoreSequenceCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    _check_store(db, payload.store_id)
    data = payload.model_dump(include=set(SEQUENCE_FIELDS), exclude_none=True)
    if not data.get("sequence_no") or data["sequence_no"] <= 0:
        data["sequence_no"] = _next_sequence_no(db)
    row = StoreSequence(**data)
    with transaction(db, label="create_store_sequence", conflict_message="Store is already in the sequence"):
        db.add(row)
    return item_envelope({"storeSequence": _sequence_out(db, row.id)}, message="Store added to sequence successfully")


@router.put("/{sequence_id}")
def update_sequence(
    sequence_id: str,
    payload: StoreSequenceUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    row = _load_sequence(db, sequence_id)
    data = changed_fields(payload, allowed=SEQUENCE_FIELDS, not_null=SEQUENCE_FIELDS)
    if "store_id" in data and data["store_id"] != row.store_id:
        _check_store(db, data["store_id"], exclude_id=row.id)
    with transaction(db, label="update_store_sequence", conflict_message="Store is already in the sequence"):
        apply_fields(row, data)
    return item_envelope({"storeSequence": _sequence_out(db, row.id)}, message="Store sequence updated successfully")


@router.patch("/{sequence_id}")
def toggle_sequence(sequence_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    row = _load_sequence(db, sequence_id)
    with transaction(db, label="toggle_store_sequence"):
        row.is_active = payload.is_active
    state = "activated" if payload.is_active else "deactivated"
    return message_envelope(f"Store sequence {state} successfully", data={"id": row.id, "is_active": payload.is_active})


@router.delete("/{sequence_id}")
def delete_sequence(sequence_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    row = _load_sequence(db, sequence_id)
    with transaction(db, label="delete_store_sequence"):
        db.delete(row)
    return message_envelope("Store removed from sequence successfully")
