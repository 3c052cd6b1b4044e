from decimal import Decimal
from typing import Optional

from pydantic import field_validator

from app.schemas.common import Payload

PAYMENT_STATUSES = ("pending", "completed", "failed", "cancelled", "refunded")

TRANSACTION_FIELDS = (
    "transaction_number",
    "store_id",
    "user_id",
    "coupon_id",
    "bill_amount",
    "vendor_discount",
    "coupon_discount",
    "cashback_used",
    "final_amount",
    "cashback_earned",
    "payment_method",
    "payment_status",
    "comment",
    "error_msg",
)
NON_NEGATIVE_FIELDS = ("vendor_discount", "coupon_discount", "cashback_used", "final_amount", "cashback_earned")


def check_payment_status(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.lower()
    if value not in PAYMENT_STATUSES:
        raise ValueError("Invalid payment status. Must be one of: " + ", ".join(PAYMENT_STATUSES))
    return value


class TransactionUpdate(Payload):
    transaction_number: Optional[str] = None
    store_id: Optional[int] = None
    user_id: Optional[int] = None
    coupon_id: Optional[int] = None
    bill_amount: Optional[Decimal] = None
    vendor_discount: Optional[Decimal] = None
    coupon_discount: Optional[Decimal] = None
    cashback_used: Optional[Decimal] = None
    final_amount: Optional[Decimal] = None
    cashback_earned: Optional[Decimal] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    comment: Optional[str] = None
    error_msg: Optional[str] = None

    _payment_status = field_validator("payment_status")(check_payment_status)

    @field_validator(*NON_NEGATIVE_FIELDS)
    @classmethod
    def _non_negative(cls, value, info):
        if value is not None and value < 0:
            raise ValueError(f"{info.field_name} must be a non-negative number")
        return value

    @field_validator("bill_amount")
    @classmethod
    def _positive_bill(cls, value):
        if value is not None and value <= 0:
            raise ValueError("Bill amount must be greater than 0")
        return value


class TransactionCreate(TransactionUpdate):
    store_id: int
    user_id: int
    bill_amount: Decimal
    final_amount: Decimal
    payment_method: str


class PaymentStatusChange(Payload):
    payment_status: str

    _payment_status = field_validator("payment_status")(check_payment_status)
