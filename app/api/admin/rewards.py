from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import ConflictError, DependencyError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.reward_history import RewardHistory
from app.models.reward_type import RewardType
from app.models.store import Store
from app.models.user import User
from app.schemas.common import ActiveToggle
from app.schemas.rewards import REWARD_FIELDS, RewardCreate, RewardUpdate
from app.services.aggregates import GroupedAggregate, collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, count_where, exists, load_or_404
from app.services.universal_query import Equals, InSet, Like, compile_filters

router = APIRouter()

REWARD_FILTERS = (
    Like("search", (RewardType.reward_name, RewardType.reward_type)),
    InSet(
        "status",
        predicates={
            "active": lambda: RewardType.is_active.is_(True),
            "inactive": lambda: RewardType.is_active.is_(False),
        },
    ),
    Equals("reward_type", RewardType.reward_type),
)

_credit = RewardHistory.credit_debit == "credit"
_debit = RewardHistory.credit_debit == "debit"


def _history_totals(db: Session) -> GroupedAggregate:
    # History rows reference reward types by code, not by id.
    return GroupedAggregate(
        db,
        RewardHistory.reward_type,
        "reward_history_totals",
        total_awarded=func.count(RewardHistory.id),
        total_credits=func.sum(case((_credit, RewardHistory.amount), else_=0)),
        total_debits=func.sum(case((_debit, RewardHistory.amount), else_=0)),
    )


def _reward_query(db: Session):
    totals = _history_totals(db)
    return totals.join(db.query(RewardType, *totals.columns()), RewardType.reward_type)


def _load_reward(db: Session, raw_id: str) -> RewardType:
    return load_or_404(db, RewardType, parse_id_or_400(raw_id, "reward"), "Reward not found")


def _ensure_unique_name(db: Session, name: str, exclude_id: int | None = None) -> None:
    criteria = [RewardType.reward_name == name]
    if exclude_id is not None:
        criteria.append(RewardType.reward_id != exclude_id)
    if exists(db, RewardType, *criteria):
        raise ConflictError("Reward with this name already exists")


@router.get("")
def list_rewards(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    criteria = compile_filters(REWARD_FILTERS, params)

    q = _reward_query(db).filter(*criteria)
    rows, total = fetch_page(q, page, RewardType.created_at.desc(), RewardType.reward_id.desc())

    stats = collect_stats(
        db,
        totalRewards=func.count(RewardType.reward_id),
        activeRewards=func.count(case((RewardType.is_active.is_(True), RewardType.reward_id))),
    )
    stats.update(
        collect_stats(
            db,
            totalAwarded=func.count(RewardHistory.id),
            totalCredits=zero_if_null(func.sum(case((_credit, RewardHistory.amount), else_=0))),
        )
    )
    return list_envelope("rewards", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/{reward_id}")
def get_reward(reward_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    reward = _load_reward(db, reward_id)
    row = _reward_query(db).filter(RewardType.reward_id == reward.reward_id).first()
    history = (
        db.query(
            RewardHistory,
            (User.first_name + " " + User.last_name).label("user_name"),
            Store.name.label("store_name"),
        )
        .outerjoin(User, User.id == RewardHistory.user_id)
        .outerjoin(Store, Store.id == RewardHistory.store_id)
        .filter(RewardHistory.reward_type == reward.reward_type)
        .order_by(RewardHistory.created_at.desc(), RewardHistory.id.desc())
        .limit(50)
        .all()
    )
    return item_envelope({"reward": flatten_row(row), "recentHistory": [flatten_row(r) for r in history]})


@router.post("", status_code=201)
def create_reward(payload: RewardCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    _ensure_unique_name(db, payload.reward_name)
    reward = RewardType(**payload.model_dump(include=set(REWARD_FIELDS), exclude_none=True))
    with transaction(db, label="create_reward", conflict_message="Reward with this name already exists"):
        db.add(reward)
    db.refresh(reward)
    return item_envelope({"reward": flatten_row(reward)}, message="Reward created successfully")


@router.put("/{reward_id}")
def update_reward(reward_id: str, payload: RewardUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    reward = _load_reward(db, reward_id)
    data = changed_fields(
        payload,
        allowed=REWARD_FIELDS,
        not_null=("reward_name", "reward_type", "normal_users_reward_value", "is_active"),
    )
    if "reward_name" in data:
        _ensure_unique_name(db, data["reward_name"], exclude_id=reward.reward_id)
    with transaction(db, label="update_reward", conflict_message="Reward with this name already exists"):
        apply_fields(reward, data)
    db.refresh(reward)
    return item_envelope({"reward": flatten_row(reward)}, message="Reward updated successfully")


@router.patch("/{reward_id}")
def toggle_reward(reward_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    reward = _load_reward(db, reward_id)
    with transaction(db, label="toggle_reward"):
        reward.is_active = payload.is_active
    message = "Reward activated successfully" if payload.is_active else "Reward deactivated successfully"
    return message_envelope(message, data={"id": reward.reward_id, "is_active": payload.is_active})


@router.delete("/{reward_id}")
def delete_reward(reward_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    reward = _load_reward(db, reward_id)
    if count_where(db, RewardHistory.id, RewardHistory.reward_type == reward.reward_type):
        raise DependencyError("Cannot delete reward that has been used. Consider deactivating instead.")
    with transaction(db, label="delete_reward"):
        reward.is_active = False
    return message_envelope("Reward deleted successfully")
