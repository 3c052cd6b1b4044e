from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Query

from app.core.config import settings
from app.schemas.universal import PageRequest


def _parse_int(raw: Any) -> int | None:
    text = str(raw if raw is not None else "").strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def resolve_page(
    raw_limit: Any,
    raw_offset: Any,
    default_limit: int | None = None,
    max_limit: int | None = None,
) -> PageRequest:
    """Clamp raw query-string paging input into a PageRequest.

    Unparseable values fall back to the defaults; the limit is clamped into
    ``[1, max_limit]`` and the offset is never negative.
    """
    default_limit = default_limit or settings.DEFAULT_PAGE_SIZE
    max_limit = max_limit or settings.MAX_PAGE_SIZE
    limit = _parse_int(raw_limit)
    if limit is None:
        limit = default_limit
    offset = _parse_int(raw_offset) or 0
    return PageRequest(limit=min(max(limit, 1), max_limit), offset=max(offset, 0))


def fetch_page(q: Query, page: PageRequest, *order_by) -> tuple[list[Any], int]:
    """Run the count query and the page query over the same filtered query.

    Both statements share one set of criteria, so ``total`` always describes
    the rows being paged. Offset paging over a table that changes between
    requests may repeat or skip rows.
    """
    total = q.order_by(None).count()
    rows = q.order_by(*order_by).limit(page.limit).offset(page.offset).all()
    return rows, int(total)
