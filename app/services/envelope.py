from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.inspection import inspect as sa_inspect

from app.schemas.universal import PageRequest, Pagination


def serialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: serialize_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(item) for item in value]
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    return value


def _is_entity(value: Any) -> bool:
    return hasattr(type(value), "__table__")


def row_to_dict(row: Any, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
    mapper = sa_inspect(type(row))
    return {
        column.key: serialize_value(getattr(row, column.key))
        for column in mapper.columns
        if column.key not in exclude
    }


def flatten_row(row: Any, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
    """Merge an ORM entity and its labelled extra columns into one dict.

    Works for plain entities and for ``Row`` results of
    ``db.query(Entity, expr.label(...), ...)``; when several entities are
    selected the first one wins on key clashes.
    """
    if row is None:
        return {}
    if _is_entity(row):
        return row_to_dict(row, exclude)
    out: dict[str, Any] = {}
    extras: dict[str, Any] = {}
    for key, value in row._mapping.items():
        if _is_entity(value):
            for k, v in row_to_dict(value, exclude).items():
                out.setdefault(k, v)
        else:
            extras[key] = serialize_value(value)
    out.update(extras)
    return out


def list_envelope(
    key: str,
    rows: list[dict[str, Any]],
    total: int,
    page: PageRequest,
    stats: dict[str, Any] | None = None,
) -> dict[str, Any]:
    data: dict[str, Any] = {key: rows, "pagination": Pagination.build(total, page).model_dump()}
    if stats is not None:
        data["stats"] = serialize_value(stats)
    return {"success": True, "data": data}


def item_envelope(data: Any, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body["data"] = serialize_value(data)
    return body


def message_envelope(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": True, "message": message, **serialize_value(extra)}
