from __future__ import annotations

import secrets
import string

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session, aliased, outerjoin

from app.core.deps import require_admin
from app.core.errors import ConflictError, ValidationError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import run_in_transaction, transaction
from app.models.category import Category
from app.models.common import utcnow
from app.models.referral import Referral
from app.models.reward_history import RewardHistory
from app.models.store import Store
from app.models.transaction import Transaction
from app.models.user import User
from app.models.user_profile import UserProfile
from app.models.user_wallet import UserWallet
from app.schemas.common import ActiveToggle
from app.schemas.users import PROFILE_FIELDS, USER_FIELDS, UserCreate, UserUpdate
from app.services.aggregates import GroupedAggregate, collect_stats, zero_if_null
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, exists, load_or_404
from app.services.universal_query import Equals, InSet, Like, as_flag, compile_filters

router = APIRouter()

REFERRAL_ALPHABET = string.ascii_uppercase + string.digits
REFERRAL_CODE_LENGTH = 8

USER_FILTERS = (
    Like("search", (User.first_name, User.last_name, User.email, User.phone_number)),
    Equals("isEmailVerified", User.is_email_verified, coerce=as_flag),
    Equals("isPhoneVerified", User.is_phone_verified, coerce=as_flag),
    InSet(
        "include_wallet",
        predicates={"true": lambda: UserWallet.id.isnot(None), "false": lambda: None},
        default="true",
    ),
)

_WALLET_COLUMNS = (
    zero_if_null(UserWallet.available_cashback, "available_cashback"),
    zero_if_null(UserWallet.total_cashback_earned, "total_cashback_earned"),
    zero_if_null(UserWallet.total_cashback_redeemed, "total_cashback_redeemed"),
    zero_if_null(UserWallet.total_coupon_redeemed, "total_coupon_redeemed"),
)


def _live_user():
    return User.deleted_at.is_(None)


def _transaction_totals(db: Session) -> GroupedAggregate:
    return GroupedAggregate(
        db,
        Transaction.user_id,
        "user_transaction_totals",
        total_transactions=func.count(Transaction.id),
        total_spent=func.sum(Transaction.final_amount),
    )


def _load_user(db: Session, raw_id: str) -> User:
    user_id = parse_id_or_400(raw_id, "user")
    return load_or_404(db, User, user_id, "User not found", _live_user())


def generate_referral_code(db: Session) -> str:
    while True:
        code = "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
        if not exists(db, User, User.referral_code == code):
            return code


def _ensure_unique_contact(db: Session, email: str | None, phone: str | None, exclude_id: int | None = None) -> None:
    scope = [_live_user()]
    if exclude_id is not None:
        scope.append(User.id != exclude_id)
    if email and exists(db, User, User.email == email, *scope):
        raise ConflictError("User with this email already exists")
    if phone and exists(db, User, User.phone_number == phone, *scope):
        raise ConflictError("User with this phone number already exists")


@router.get("")
def list_users(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"))
    criteria = compile_filters(USER_FILTERS, params)

    totals = _transaction_totals(db)
    q = db.query(User, *_WALLET_COLUMNS, *totals.columns()).outerjoin(UserWallet, UserWallet.user_id == User.id)
    q = totals.join(q, User.id).filter(_live_user(), User.is_active.is_(True), *criteria)
    rows, total = fetch_page(q, page, User.created_at.desc(), User.id.desc())

    stats = collect_stats(
        db,
        _live_user(),
        User.is_active.is_(True),
        select_from=outerjoin(User, UserWallet, UserWallet.user_id == User.id),
        totalUsers=func.count(func.distinct(User.id)),
        verifiedUsers=func.count(func.distinct(case((User.is_email_verified.is_(True), User.id)))),
        vipUsers=func.count(func.distinct(case((User.is_vip.is_(True), User.id)))),
        totalCashback=zero_if_null(func.sum(UserWallet.available_cashback)),
        totalEarned=zero_if_null(func.sum(UserWallet.total_cashback_earned)),
    )
    return list_envelope("users", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    user = _load_user(db, user_id)

    totals = _transaction_totals(db)
    profile_columns = [getattr(UserProfile, name).label(name) for name in PROFILE_FIELDS]
    q = (
        db.query(User, *_WALLET_COLUMNS, *profile_columns, *totals.columns())
        .outerjoin(UserWallet, UserWallet.user_id == User.id)
        .outerjoin(UserProfile, UserProfile.user_id == User.id)
    )
    row = totals.join(q, User.id).filter(User.id == user.id).first()

    recent = (
        db.query(Transaction, Store.name.label("store_name"), Category.name.label("category_name"))
        .outerjoin(Store, Store.id == Transaction.store_id)
        .outerjoin(Category, Category.id == Store.category_id)
        .filter(Transaction.user_id == user.id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(10)
        .all()
    )
    rewards = (
        db.query(
            RewardHistory,
            Transaction.transaction_number.label("transaction_number"),
            Transaction.bill_amount.label("bill_amount"),
            Transaction.final_amount.label("final_amount"),
            Store.name.label("store_name"),
        )
        .outerjoin(Transaction, Transaction.id == RewardHistory.transaction_id)
        .outerjoin(Store, Store.id == RewardHistory.store_id)
        .filter(RewardHistory.user_id == user.id)
        .order_by(RewardHistory.created_at.desc(), RewardHistory.id.desc())
        .limit(20)
        .all()
    )
    return item_envelope(
        {
            "user": flatten_row(row),
            "recentTransactions": [flatten_row(r) for r in recent],
            "rewards": [flatten_row(r) for r in rewards],
        }
    )


@router.get("/{user_id}/referrals")
def get_user_referrals(user_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    user = _load_user(db, user_id)
    referred = aliased(User)
    rows = (
        db.query(
            Referral,
            referred.first_name.label("referred_first_name"),
            referred.last_name.label("referred_last_name"),
            referred.email.label("referred_email"),
            referred.phone_number.label("referred_phone"),
        )
        .outerjoin(referred, referred.id == Referral.referred_user_id)
        .filter(Referral.referrer_user_id == user.id)
        .order_by(Referral.created_at.desc(), Referral.id.desc())
        .all()
    )
    stats = collect_stats(
        db,
        Referral.referrer_user_id == user.id,
        total_referrals=func.count(Referral.id),
        pending_referrals=func.count(case((Referral.referral_status == "link_sent", Referral.id))),
        signed_up_referrals=func.count(case((Referral.referral_status == "signed_up", Referral.id))),
        completed_referrals=func.count(case((Referral.referral_status == "transaction_made", Referral.id))),
        total_rewards_earned=zero_if_null(func.sum(Referral.reward_earned)),
        average_reward_per_referral=zero_if_null(func.avg(Referral.reward_earned)),
    )
    return item_envelope(
        {
            "referrals": [flatten_row(r) for r in rows],
            "stats": stats,
            "referrer": {"id": user.id, "name": f"{user.first_name} {user.last_name}"},
        }
    )


@router.post("", status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    _ensure_unique_contact(db, payload.email, payload.phone_number)
    user_data = payload.model_dump(include=set(USER_FIELDS))
    if not payload.is_vip:
        user_data["vip_start_date"] = None
        user_data["vip_end_date"] = None
    profile_data = payload.profile_data()

    def insert_user(session: Session, state: dict) -> None:
        user = User(**user_data, referral_code=generate_referral_code(session))
        session.add(user)
        state["user"] = user

    def insert_profile(session: Session, state: dict) -> None:
        if profile_data:
            session.add(UserProfile(user_id=state["user"].id, **profile_data))

    def ensure_wallet(session: Session, state: dict) -> None:
        user_id = state["user"].id
        if not exists(session, UserWallet, UserWallet.user_id == user_id):
            session.add(UserWallet(user_id=user_id))

    state = run_in_transaction(
        db,
        (insert_user, insert_profile, ensure_wallet),
        label="create_user",
        conflict_message="User already exists",
    )
    user = state["user"]
    db.refresh(user)
    return item_envelope({"user": flatten_row(user)}, message="User created successfully")


@router.put("/{user_id}")
def update_user(user_id: str, payload: UserUpdate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    user = _load_user(db, user_id)
    data = changed_fields(
        payload,
        allowed=USER_FIELDS + PROFILE_FIELDS,
        not_null=("first_name", "last_name", "email", "phone_number"),
    )
    _ensure_unique_contact(db, data.get("email"), data.get("phone_number"), exclude_id=user.id)

    user_data = {k: v for k, v in data.items() if k in USER_FIELDS}
    profile_data = {k: v for k, v in data.items() if k in PROFILE_FIELDS}

    is_vip = user_data.get("is_vip", user.is_vip)
    if is_vip:
        start = user_data.get("vip_start_date", user.vip_start_date)
        end = user_data.get("vip_end_date", user.vip_end_date)
        if not start or not end:
            raise ValidationError("VIP start date and end date are required for VIP users")
        if start >= end:
            raise ValidationError("VIP end date must be after start date")
    else:
        user_data["vip_start_date"] = None
        user_data["vip_end_date"] = None

    with transaction(db, label="update_user", conflict_message="User already exists"):
        apply_fields(user, user_data)
        if profile_data:
            profile = db.query(UserProfile).filter(UserProfile.user_id == user.id).first()
            if profile is None:
                db.add(UserProfile(user_id=user.id, **profile_data))
            else:
                apply_fields(profile, profile_data)
    db.refresh(user)
    return item_envelope({"user": flatten_row(user)}, message="User updated successfully")


@router.patch("/{user_id}")
def toggle_user(user_id: str, payload: ActiveToggle, db: Session = Depends(get_db), admin=Depends(require_admin)):
    user = _load_user(db, user_id)
    with transaction(db, label="toggle_user"):
        user.is_active = payload.is_active
    message = "User activated successfully" if payload.is_active else "User deactivated successfully"
    return message_envelope(message, data={"id": user.id, "is_active": payload.is_active})


@router.delete("/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    user = _load_user(db, user_id)
    with transaction(db, label="delete_user"):
        user.deleted_at = utcnow()
        user.is_active = False
    return message_envelope("User deleted successfully")
