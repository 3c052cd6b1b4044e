from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import field_validator, model_validator

from app.schemas.common import Payload

CAMPAIGN_TYPES = ("daily", "weekly", "monthly", "custom", "spin_wheel")

CAMPAIGN_FIELDS = (
    "campaign_type",
    "title",
    "description",
    "start_date",
    "end_date",
    "repeat_interval",
    "custom_interval_days",
    "max_attempts_per_interval",
    "is_active",
)
SPIN_REWARD_FIELDS = (
    "campaign_id",
    "reward_type",
    "reward_value",
    "coupon_id",
    "probability_weight",
    "display_text",
    "display_color",
    "is_active",
)


class CampaignUpdate(Payload):
    campaign_type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    repeat_interval: Optional[str] = None
    custom_interval_days: Optional[int] = None
    max_attempts_per_interval: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("campaign_type")
    @classmethod
    def _campaign_type(cls, value):
        if value is None:
            return value
        value = value.lower()
        if value not in CAMPAIGN_TYPES:
            raise ValueError("Invalid campaign_type. Must be one of: " + ", ".join(CAMPAIGN_TYPES))
        return value

    @field_validator("max_attempts_per_interval", "custom_interval_days")
    @classmethod
    def _positive(cls, value, info):
        if value is not None and value <= 0:
            raise ValueError(f"{info.field_name} must be greater than 0")
        return value

    @model_validator(mode="after")
    def _window(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CampaignCreate(CampaignUpdate):
    campaign_type: str
    title: str
    repeat_interval: str
    max_attempts_per_interval: int
    is_active: bool = True


class SpinRewardUpdate(Payload):
    campaign_id: Optional[int] = None
    reward_type: Optional[str] = None
    reward_value: Optional[Decimal] = None
    coupon_id: Optional[int] = None
    probability_weight: Optional[int] = None
    display_text: Optional[str] = None
    display_color: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("probability_weight")
    @classmethod
    def _weight(cls, value):
        if value is not None and value <= 0:
            raise ValueError("probability_weight must be greater than 0")
        return value

    @field_validator("reward_value")
    @classmethod
    def _value(cls, value):
        if value is not None and value < 0:
            raise ValueError("reward_value must be a non-negative number")
        return value


class SpinRewardCreate(SpinRewardUpdate):
    campaign_id: int
    reward_type: str
    probability_weight: int
    display_text: str
    is_active: bool = True
