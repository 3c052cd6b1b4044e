from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import field_validator

from app.schemas.common import Payload, check_email

STORE_FIELDS = (
    "name",
    "category_id",
    "sub_category",
    "description",
    "phone_number",
    "email",
    "address",
    "latitude",
    "longitude",
    "logo",
    "normal_discount_percentage",
    "vip_discount_percentage",
    "commission_percent",
    "minimum_order_amount",
    "upi_id",
    "google_business_url",
    "contract_start_date",
    "contract_expiry_date",
    "is_premium",
    "is_active",
)


class StoreUpdate(Payload):
    name: Optional[str] = None
    category_id: Optional[int] = None
    sub_category: Optional[str] = None
    description: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[Decimal] = None
    longitude: Optional[Decimal] = None
    logo: Optional[str] = None
    normal_discount_percentage: Optional[Decimal] = None
    vip_discount_percentage: Optional[Decimal] = None
    commission_percent: Optional[Decimal] = None
    minimum_order_amount: Optional[Decimal] = None
    upi_id: Optional[str] = None
    google_business_url: Optional[str] = None
    contract_start_date: Optional[date] = None
    contract_expiry_date: Optional[date] = None
    is_premium: Optional[bool] = None
    is_active: Optional[bool] = None

    _email = field_validator("email")(check_email)

    @field_validator("latitude")
    @classmethod
    def _latitude_range(cls, value):
        if value is not None and not (-90 <= value <= 90):
            raise ValueError("Latitude must be between -90 and 90")
        return value

    @field_validator("longitude")
    @classmethod
    def _longitude_range(cls, value):
        if value is not None and not (-180 <= value <= 180):
            raise ValueError("Longitude must be between -180 and 180")
        return value

    @field_validator("normal_discount_percentage", "vip_discount_percentage", "commission_percent")
    @classmethod
    def _percentage_range(cls, value, info):
        if value is not None and not (0 <= value <= 100):
            raise ValueError(f"{info.field_name} must be between 0 and 100")
        return value


class StoreCreate(StoreUpdate):
    name: str
    category_id: int
    phone_number: str
    email: str
    address: str
    is_premium: bool = False
    is_active: bool = True
