from decimal import Decimal
from typing import Optional

from pydantic import field_validator

from app.schemas.common import Payload

REWARD_FIELDS = (
    "reward_name",
    "reward_type",
    "normal_users_reward_value",
    "vip_users_reward_value",
    "description",
    "is_active",
)


class RewardUpdate(Payload):
    reward_name: Optional[str] = None
    reward_type: Optional[str] = None
    normal_users_reward_value: Optional[Decimal] = None
    vip_users_reward_value: Optional[Decimal] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("normal_users_reward_value", "vip_users_reward_value")
    @classmethod
    def _non_negative(cls, value):
        if value is not None and value < 0:
            raise ValueError("Reward values must be non-negative numbers")
        return value


class RewardCreate(RewardUpdate):
    reward_name: str
    reward_type: str
    normal_users_reward_value: Decimal
    is_active: bool = True
