from __future__ import annotations

from app.core.config import settings
from app.core.errors import ValidationError

SETTLEMENT_STATUSES = ("pending", "processing", "completed", "failed", "cancelled")

# Transitions accepted under the "strict" policy. Terminal states map to nothing.
STRICT_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"processing", "cancelled"}),
    "processing": frozenset({"completed", "failed", "cancelled"}),
    "failed": frozenset(),
    "completed": frozenset(),
    "cancelled": frozenset(),
}


def normalize_settlement_status(raw: str | None) -> str:
    value = str(raw or "").strip().lower()
    if value not in SETTLEMENT_STATUSES:
        raise ValidationError("Invalid settlement status. Must be one of: " + ", ".join(SETTLEMENT_STATUSES))
    return value


def check_settlement_transition(current: str, target: str, policy: str | None = None) -> None:
    """Raise ValidationError when ``current -> target`` is not allowed.

    Re-applying the current status is always accepted. The ``permissive``
    policy accepts every known status from every status.
    """
    policy = (policy or settings.SETTLEMENT_STATUS_POLICY).lower()
    if current == target or policy == "permissive":
        return
    allowed = STRICT_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise ValidationError(f"Cannot change settlement status from {current} to {target}")
