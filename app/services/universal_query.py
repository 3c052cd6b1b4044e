from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional, Sequence, Union

from sqlalchemy import Date, func, or_
from sqlalchemy.sql.elements import ColumnElement

from app.core.errors import ValidationError

Coerce = Callable[[str, str], Any]
Predicate = Callable[[], Optional[ColumnElement]]

_TRUE_VALUES = {"1", "true", "yes", "y", "active"}
_FALSE_VALUES = {"0", "false", "no", "n", "inactive"}


def _bad_filter_value(param: str, kind: str) -> ValidationError:
    return ValidationError(f'Invalid value for filter "{param}" ({kind})')


def as_text(param: str, raw: str) -> str:
    return raw.strip()


def as_int(param: str, raw: str) -> int:
    text = raw.strip()
    try:
        return int(text)
    except ValueError:
        raise _bad_filter_value(param, "integer")


def as_number(param: str, raw: str) -> Decimal:
    normalized = raw.strip().replace(",", ".")
    try:
        return Decimal(normalized)
    except InvalidOperation:
        raise _bad_filter_value(param, "number")


def as_flag(param: str, raw: str) -> bool:
    text = raw.strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise _bad_filter_value(param, "boolean")


def as_date(param: str, raw: str) -> date:
    text = raw.strip()
    try:
        # Accept either YYYY-MM-DD or a full ISO datetime and keep its date part.
        if "T" in text or " " in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise _bad_filter_value(param, "date")


def escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class Equals:
    """``column = value`` after coercion; ``null_token`` maps to ``IS NULL``."""

    param: str
    column: Any
    coerce: Coerce = as_text
    null_token: str | None = None
    default: str | None = None

    def compile(self, raw: str) -> list[ColumnElement]:
        if self.null_token is not None and raw.strip().lower() == self.null_token:
            return [self.column.is_(None)]
        return [self.column == self.coerce(self.param, raw)]


@dataclass(frozen=True)
class Like:
    """Case-insensitive substring match OR-ed over several columns."""

    param: str
    columns: Sequence[Any]
    default: str | None = None

    def compile(self, raw: str) -> list[ColumnElement]:
        term = raw.strip()
        if not term:
            return []
        pattern = f"%{escape_like(term)}%"
        return [or_(*[col.ilike(pattern, escape="\\") for col in self.columns])]


@dataclass(frozen=True)
class Range:
    """Inclusive bounds from two parameters, by default on ``DATE(column)``."""

    param_from: str
    param_to: str
    column: Any
    coerce: Coerce = as_date
    on_date: bool = True
    default: str | None = None

    @property
    def param(self) -> str:
        return self.param_from

    def target(self):
        if self.on_date:
            return func.date(self.column, type_=Date)
        return self.column

    def compile_bounds(self, raw_from: str | None, raw_to: str | None) -> list[ColumnElement]:
        criteria: list[ColumnElement] = []
        if raw_from:
            criteria.append(self.target() >= self.coerce(self.param_from, raw_from))
        if raw_to:
            criteria.append(self.target() <= self.coerce(self.param_to, raw_to))
        return criteria


@dataclass(frozen=True)
class InSet:
    """Closed set of accepted values.

    Without ``predicates`` the normalized value is compared to ``column``.
    With ``predicates`` each accepted value maps to its own criterion; a
    predicate returning ``None`` means "no restriction".
    """

    param: str
    column: Any = None
    allowed: frozenset[str] = frozenset()
    predicates: Mapping[str, Predicate] = field(default_factory=dict)
    normalize: Callable[[str], str] = str.lower
    default: str | None = None

    def accepted(self) -> frozenset[str]:
        return frozenset(self.predicates) if self.predicates else self.allowed

    def compile(self, raw: str) -> list[ColumnElement]:
        value = self.normalize(raw.strip())
        if value not in self.accepted():
            choices = ", ".join(sorted(self.accepted()))
            raise ValidationError(f'Invalid {self.param}. Must be one of: {choices}')
        if self.predicates:
            criterion = self.predicates[value]()
            return [] if criterion is None else [criterion]
        return [self.column == value]


FilterOp = Union[Equals, Like, Range, InSet]
FilterList = Sequence[FilterOp]


def _raw_value(params: Mapping[str, Any], name: str, default: str | None) -> str | None:
    if name not in params:
        return default
    value = params.get(name)
    if value is None:
        return default
    text = str(value)
    # An empty parameter means "no filter", never "match the empty string".
    return text if text.strip() else None


def compile_filters(filters: FilterList, params: Mapping[str, Any]) -> list[ColumnElement]:
    """Turn query-string parameters into WHERE criteria.

    Parameters are visited in ``filters`` order and every value is bound, so the
    resulting list can be applied verbatim to both the count and page queries.
    Invalid values raise ``ValidationError`` before any statement runs.
    """
    criteria: list[ColumnElement] = []
    for op in filters:
        if isinstance(op, Range):
            criteria.extend(
                op.compile_bounds(
                    _raw_value(params, op.param_from, op.default),
                    _raw_value(params, op.param_to, op.default),
                )
            )
            continue
        raw = _raw_value(params, op.param, op.default)
        if raw is None:
            continue
        criteria.extend(op.compile(raw))
    return criteria
