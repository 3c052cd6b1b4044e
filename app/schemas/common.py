import re
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s\-\(\)]{10,}$")


def check_email(value: str | None) -> str | None:
    if value is not None and not EMAIL_RE.fullmatch(value):
        raise ValueError("Invalid email format")
    return value


def check_phone(value: str | None) -> str | None:
    if value is not None and not PHONE_RE.fullmatch(value):
        raise ValueError("Invalid phone number format")
    return value


class Payload(BaseModel):
    """Request body base: blank strings are treated as absent values."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def _blank_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: (None if isinstance(v, str) and not v.strip() else v) for k, v in data.items()}
        return data


class ActiveToggle(Payload):
    is_active: bool
