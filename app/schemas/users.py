from datetime import date
from typing import Optional

from pydantic import field_validator, model_validator

from app.schemas.common import Payload, check_email, check_phone

USER_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone_number",
    "is_email_verified",
    "is_phone_verified",
    "is_active",
    "is_vip",
    "vip_start_date",
    "vip_end_date",
)
PROFILE_FIELDS = (
    "gender",
    "date_of_birth",
    "anniversary_date",
    "spouse_birth_date",
    "address_building",
    "address_street",
    "address_city",
    "address_state",
    "address_pincode",
)


def _check_vip_window(is_vip, start, end) -> None:
    if not is_vip:
        return
    if not start or not end:
        raise ValueError("VIP start date and end date are required for VIP users")
    if start >= end:
        raise ValueError("VIP end date must be after start date")


class _ProfileFields(Payload):
    gender: Optional[str] = None
    date_of_birth: Optional[date] = None
    anniversary_date: Optional[date] = None
    spouse_birth_date: Optional[date] = None
    address_building: Optional[str] = None
    address_street: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_pincode: Optional[str] = None

    def profile_data(self) -> dict:
        data = self.model_dump(include=set(PROFILE_FIELDS))
        return {k: v for k, v in data.items() if v is not None}


class UserCreate(_ProfileFields):
    phone_number: str
    first_name: str
    last_name: str
    email: str
    is_email_verified: bool = False
    is_phone_verified: bool = False
    is_active: bool = True
    is_vip: bool = False
    vip_start_date: Optional[date] = None
    vip_end_date: Optional[date] = None

    _email = field_validator("email")(check_email)
    _phone = field_validator("phone_number")(check_phone)

    @model_validator(mode="after")
    def _vip_window(self):
        _check_vip_window(self.is_vip, self.vip_start_date, self.vip_end_date)
        return self


class UserUpdate(_ProfileFields):
    phone_number: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    is_email_verified: Optional[bool] = None
    is_phone_verified: Optional[bool] = None
    is_active: Optional[bool] = None
    is_vip: Optional[bool] = None
    vip_start_date: Optional[date] = None
    vip_end_date: Optional[date] = None

    _email = field_validator("email")(check_email)
    _phone = field_validator("phone_number")(check_phone)

    @model_validator(mode="after")
    def _vip_window(self):
        _check_vip_window(self.is_vip, self.vip_start_date, self.vip_end_date)
        return self
