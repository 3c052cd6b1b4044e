from __future__ import annotations

from typing import Any, Iterable

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError


def load_or_404(db: Session, model, row_id: int, message: str, *criteria):
    pk = model.__mapper__.primary_key[0]
    row = db.query(model).filter(pk == row_id, *criteria).first()
    if row is None:
        raise NotFoundError(message)
    return row


def exists(db: Session, model, *criteria) -> bool:
    return db.query(model).filter(*criteria).first() is not None


def count_where(db: Session, column, *criteria) -> int:
    return int(db.query(func.count(column)).filter(*criteria).scalar() or 0)


def changed_fields(
    payload: BaseModel,
    allowed: Iterable[str] | None = None,
    not_null: Iterable[str] = (),
) -> dict[str, Any]:
    """Fields explicitly present in the request body, or 400 when there are none."""
    data = payload.model_dump(exclude_unset=True)
    if allowed is not None:
        keep = set(allowed)
        data = {k: v for k, v in data.items() if k in keep}
    if not data:
        raise ValidationError("No valid fields to update")
    for key in not_null:
        if key in data and data[key] is None:
            raise ValidationError(f"{key} cannot be empty")
    return data


def apply_fields(row: Any, data: dict[str, Any]) -> None:
    for key, value in data.items():
        setattr(row, key, value)
