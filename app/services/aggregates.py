from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Query, Session


def zero_if_null(expr, label: str | None = None):
    wrapped = func.coalesce(expr, 0)
    return wrapped.label(label) if label else wrapped


class GroupedAggregate:
    """Pre-aggregated subquery joined back to its entity by a grouping key.

    Aggregating before the join keeps one output row per entity whatever the
    fan-out of the child table. Every exposed column is COALESCE-d to zero so
    entities without children report ``0`` instead of ``NULL``.
    """

    def __init__(self, db: Session, group_key, name: str | None = None, criteria=(), **aggregates):
        self.names = list(aggregates)
        q = db.query(group_key.label("group_key"), *[expr.label(key) for key, expr in aggregates.items()])
        if criteria:
            q = q.filter(*criteria)
        self.subquery = q.group_by(group_key).subquery(name)

    def columns(self) -> list:
        return [zero_if_null(self.subquery.c[key], key) for key in self.names]

    def column(self, key: str):
        return zero_if_null(self.subquery.c[key])

    def join(self, q: Query, entity_key) -> Query:
        return q.outerjoin(self.subquery, self.subquery.c.group_key == entity_key)


def correlated_count(count_column, *criteria):
    """Scalar ``COUNT`` subquery correlated to the enclosing query."""
    return select(func.count(count_column)).where(*criteria).scalar_subquery()


def _number(value: Any) -> Any:
    if value is None:
        return 0
    if isinstance(value, Decimal):
        return float(value)
    return value


def collect_stats(db: Session, *criteria, select_from=None, **exprs) -> dict[str, Any]:
    """Run one aggregate query and return its single row as plain numbers.

    Stats describe the whole scope given by ``criteria`` and ignore the list
    filters of the page they accompany.
    """
    q = db.query(*[expr.label(key) for key, expr in exprs.items()])
    if select_from is not None:
        q = q.select_from(select_from)
    if criteria:
        q = q.filter(*criteria)
    row = q.one()
    return {key: _number(row._mapping[key]) for key in exprs}
