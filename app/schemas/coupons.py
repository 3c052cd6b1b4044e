from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import field_validator

from app.schemas.common import Payload

COUPON_FIELDS = (
    "code",
    "title",
    "description",
    "store_id",
    "discount_amount",
    "discount_percentage",
    "min_order_amount",
    "max_discount",
    "usage_limit",
    "valid_from",
    "valid_until",
    "is_active",
)


class CouponUpdate(Payload):
    code: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    store_id: Optional[int] = None
    discount_amount: Optional[Decimal] = None
    discount_percentage: Optional[Decimal] = None
    min_order_amount: Optional[Decimal] = None
    max_discount: Optional[Decimal] = None
    usage_limit: Optional[int] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: Optional[bool] = None

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value):
        return value.upper() if value is not None else value

    @field_validator("valid_from", "valid_until")
    @classmethod
    def _aware(cls, value):
        # Naive timestamps are taken as UTC.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("min_order_amount", "max_discount", "usage_limit")
    @classmethod
    def _non_negative(cls, value, info):
        if value is not None and value < 0:
            raise ValueError(f"{info.field_name} must be a non-negative number")
        return value


class CouponCreate(CouponUpdate):
    code: str
    title: str
    valid_from: datetime
    valid_until: datetime
    is_active: bool = True
