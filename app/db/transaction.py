from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError

_LOG = logging.getLogger("app.db")

Step = Callable[[Session, dict[str, Any]], Any]


@contextmanager
def transaction(db: Session, label: str = "mutation", conflict_message: str | None = None) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back.

    The session keeps a single pooled connection for the whole block. Unique
    constraint violations surface as ``ConflictError``; any other failure is
    re-raised after the rollback.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        _LOG.warning("transaction %s rolled back on integrity error: %s", label, exc.orig)
        raise ConflictError(conflict_message) from exc
    except Exception:
        db.rollback()
        _LOG.warning("transaction %s rolled back", label)
        raise


def run_in_transaction(
    db: Session,
    steps: Iterable[Step],
    *,
    label: str = "mutation",
    conflict_message: str | None = None,
) -> dict[str, Any]:
    """Execute ordered steps as one unit of work.

    Each step receives the session and a shared ``state`` dict, so later steps
    can use rows created by earlier ones. Every step is flushed before the next
    one starts; the first failing step aborts the unit.
    """
    state: dict[str, Any] = {}
    with transaction(db, label=label, conflict_message=conflict_message):
        for step in steps:
            step(db, state)
            db.flush()
    return state
