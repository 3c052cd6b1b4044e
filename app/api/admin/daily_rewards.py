from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import case, func
from sqlalchemy.orm import Session

from app.core.deps import require_admin
from app.core.errors import DependencyError, ValidationError, parse_id_or_400
from app.db.session import get_db
from app.db.transaction import transaction
from app.models.coupon import Coupon
from app.models.daily_reward_campaign import DailyRewardCampaign
from app.models.spin_wheel_reward import SpinWheelReward
from app.models.user_daily_spin import UserDailySpin
from app.schemas.daily_rewards import (
    CAMPAIGN_FIELDS,
    SPIN_REWARD_FIELDS,
    CampaignCreate,
    CampaignUpdate,
    SpinRewardCreate,
    SpinRewardUpdate,
)
from app.services.aggregates import collect_stats, correlated_count
from app.services.envelope import flatten_row, item_envelope, list_envelope, message_envelope
from app.services.lookups import search_coupons
from app.services.pagination import fetch_page, resolve_page
from app.services.records import apply_fields, changed_fields, count_where, exists, load_or_404
from app.services.universal_query import Equals, Like, as_flag, as_int, compile_filters

router = APIRouter()

CAMPAIGN_PAGE_SIZE = 50
SPIN_REWARD_PAGE_SIZE = 20
COUPON_LOOKUP_MAX = 50

CAMPAIGN_FILTERS = (
    Like("search", (DailyRewardCampaign.title, DailyRewardCampaign.description, DailyRewardCampaign.campaign_type)),
    Equals("is_active", DailyRewardCampaign.is_active, coerce=as_flag),
    Equals("campaign_type", DailyRewardCampaign.campaign_type),
)
SPIN_REWARD_FILTERS = (
    Equals("campaign_id", SpinWheelReward.campaign_id, coerce=as_int),
    Equals("reward_type", SpinWheelReward.reward_type),
    Equals("is_active", SpinWheelReward.is_active, coerce=as_flag),
)


def _campaign_query(db: Session):
    return db.query(
        DailyRewardCampaign,
        correlated_count(SpinWheelReward.id, SpinWheelReward.campaign_id == DailyRewardCampaign.id).label(
            "reward_count"
        ),
        correlated_count(UserDailySpin.id, UserDailySpin.campaign_id == DailyRewardCampaign.id).label("total_spins"),
    )


def _spin_reward_query(db: Session):
    return (
        db.query(
            SpinWheelReward,
            DailyRewardCampaign.title.label("campaign_title"),
            DailyRewardCampaign.campaign_type.label("campaign_type"),
            Coupon.code.label("coupon_code"),
            Coupon.title.label("coupon_title"),
        )
        .outerjoin(DailyRewardCampaign, DailyRewardCampaign.id == SpinWheelReward.campaign_id)
        .outerjoin(Coupon, Coupon.id == SpinWheelReward.coupon_id)
    )


def _load_campaign(db: Session, raw_id: str) -> DailyRewardCampaign:
    return load_or_404(db, DailyRewardCampaign, parse_id_or_400(raw_id, "campaign"), "Campaign not found")


def _load_spin_reward(db: Session, raw_id: str) -> SpinWheelReward:
    return load_or_404(db, SpinWheelReward, parse_id_or_400(raw_id, "reward"), "Spin wheel reward not found")


def _check_spin_reward_refs(db: Session, data: dict) -> None:
    if data.get("campaign_id") is not None and not exists(
        db, DailyRewardCampaign, DailyRewardCampaign.id == data["campaign_id"]
    ):
        raise ValidationError("Invalid campaign ID")
    if data.get("coupon_id") is not None and not exists(db, Coupon, Coupon.id == data["coupon_id"]):
        raise ValidationError("Invalid coupon ID")


def _spin_reward_out(db: Session, reward_id: int) -> dict:
    return flatten_row(_spin_reward_query(db).filter(SpinWheelReward.id == reward_id).first())


@router.get("/campaigns")
def list_campaigns(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"), CAMPAIGN_PAGE_SIZE)
    q = _campaign_query(db).filter(*compile_filters(CAMPAIGN_FILTERS, params))
    rows, total = fetch_page(q, page, DailyRewardCampaign.created_at.desc(), DailyRewardCampaign.id.desc())

    def of_type(kind: str):
        return func.count(case((DailyRewardCampaign.campaign_type == kind, DailyRewardCampaign.id)))

    stats = collect_stats(
        db,
        totalCampaigns=func.count(DailyRewardCampaign.id),
        activeCampaigns=func.count(case((DailyRewardCampaign.is_active.is_(True), DailyRewardCampaign.id))),
        dailyCampaigns=of_type("daily"),
        weeklyCampaigns=of_type("weekly"),
        spinWheelCampaigns=of_type("spin_wheel"),
    )
    return list_envelope("campaigns", [flatten_row(r) for r in rows], total, page, stats)


@router.get("/campaigns/{campaign_id}")
def get_campaign(campaign_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    campaign = _load_campaign(db, campaign_id)
    row = _campaign_query(db).filter(DailyRewardCampaign.id == campaign.id).first()
    rewards = (
        _spin_reward_query(db)
        .filter(SpinWheelReward.campaign_id == campaign.id)
        .order_by(SpinWheelReward.probability_weight.desc(), SpinWheelReward.id.asc())
        .all()
    )
    return item_envelope({"campaign": flatten_row(row), "rewards": [flatten_row(r) for r in rewards]})


@router.post("/campaigns", status_code=201)
def create_campaign(payload: CampaignCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    campaign = DailyRewardCampaign(**payload.model_dump(include=set(CAMPAIGN_FIELDS), exclude_none=True))
    with transaction(db, label="create_campaign"):
        db.add(campaign)
    db.refresh(campaign)
    return item_envelope({"campaign": flatten_row(campaign)}, message="Campaign created successfully")


@router.put("/campaigns/{campaign_id}")
def update_campaign(
    campaign_id: str,
    payload: CampaignUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    campaign = _load_campaign(db, campaign_id)
    data = changed_fields(
        payload,
        allowed=CAMPAIGN_FIELDS,
        not_null=("campaign_type", "title", "repeat_interval", "max_attempts_per_interval", "is_active"),
    )
    with transaction(db, label="update_campaign"):
        apply_fields(campaign, data)
    db.refresh(campaign)
    return item_envelope({"campaign": flatten_row(campaign)}, message="Campaign updated successfully")


@router.delete("/campaigns/{campaign_id}")
def delete_campaign(campaign_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    campaign = _load_campaign(db, campaign_id)
    if count_where(db, SpinWheelReward.id, SpinWheelReward.campaign_id == campaign.id):
        raise DependencyError("Cannot delete campaign that has spin wheel rewards. Delete rewards first.")
    with transaction(db, label="delete_campaign"):
        db.delete(campaign)
    return message_envelope("Campaign deleted successfully")


@router.get("/rewards")
def list_spin_rewards(request: Request, db: Session = Depends(get_db), admin=Depends(require_admin)):
    params = request.query_params
    page = resolve_page(params.get("limit"), params.get("offset"), SPIN_REWARD_PAGE_SIZE)
    q = _spin_reward_query(db).filter(*compile_filters(SPIN_REWARD_FILTERS, params))
    rows, total = fetch_page(
        q, page, SpinWheelReward.campaign_id.asc(), SpinWheelReward.probability_weight.desc(), SpinWheelReward.id.asc()
    )
    return list_envelope("rewards", [flatten_row(r) for r in rows], total, page)


@router.get("/rewards/{reward_id}")
def get_spin_reward(reward_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    reward = _load_spin_reward(db, reward_id)
    return item_envelope({"reward": _spin_reward_out(db, reward.id)})


@router.post("/rewards", status_code=201)
def create_spin_reward(payload: SpinRewardCreate, db: Session = Depends(get_db), admin=Depends(require_admin)):
    data = payload.model_dump(include=set(SPIN_REWARD_FIELDS), exclude_none=True)
    _check_spin_reward_refs(db, data)
    reward = SpinWheelReward(**data)
    with transaction(db, label="create_spin_reward"):
        db.add(reward)
    return item_envelope({"reward": _spin_reward_out(db, reward.id)}, message="Spin wheel reward created successfully")


@router.put("/rewards/{reward_id}")
def update_spin_reward(
    reward_id: str,
    payload: SpinRewardUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    reward = _load_spin_reward(db, reward_id)
    data = changed_fields(
        payload,
        allowed=SPIN_REWARD_FIELDS,
        not_null=("campaign_id", "reward_type", "probability_weight", "display_text", "display_color", "is_active"),
    )
    _check_spin_reward_refs(db, data)
    with transaction(db, label="update_spin_reward"):
        apply_fields(reward, data)
    return item_envelope({"reward": _spin_reward_out(db, reward.id)}, message="Spin wheel reward updated successfully")


@router.delete("/rewards/{reward_id}")
def delete_spin_reward(reward_id: str, db: Session = Depends(get_db), admin=Depends(require_admin)):
    reward = _load_spin_reward(db, reward_id)
    with transaction(db, label="delete_spin_reward"):
        db.delete(reward)
    return message_envelope("Spin wheel reward deleted successfully")


@router.get("/search/coupons")
def lookup_campaign_coupons(
    q: str | None = None,
    limit: str | None = None,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    page = resolve_page(limit, 0, SPIN_REWARD_PAGE_SIZE, COUPON_LOOKUP_MAX)
    return item_envelope(search_coupons(db, q, limit=page.limit, currently_valid=True, min_length=1))
