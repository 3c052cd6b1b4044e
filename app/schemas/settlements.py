from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import field_validator

from app.schemas.common import Payload

SETTLEMENT_FIELDS = (
    "transaction_id",
    "store_id",
    "user_id",
    "bill_amount",
    "final_amount",
    "commission_percentage",
    "commission_amount",
    "settlement_amount",
    "settled_amount",
    "pending_amount",
    "extra_paid_amount",
    "tax_amount",
    "processing_fee",
    "net_settlement_amount",
    "settlement_status",
    "payment_method",
    "payment_reference",
    "bank_account",
    "processed_by",
    "transaction_date",
    "settlement_date",
    "comments",
)
AMOUNT_FIELDS = (
    "final_amount",
    "commission_amount",
    "settled_amount",
    "pending_amount",
    "extra_paid_amount",
    "tax_amount",
    "processing_fee",
    "net_settlement_amount",
)


class SettlementUpdate(Payload):
    transaction_id: Optional[int] = None
    store_id: Optional[int] = None
    user_id: Optional[int] = None
    bill_amount: Optional[Decimal] = None
    final_amount: Optional[Decimal] = None
    commission_percentage: Optional[Decimal] = None
    commission_amount: Optional[Decimal] = None
    settlement_amount: Optional[Decimal] = None
    settled_amount: Optional[Decimal] = None
    pending_amount: Optional[Decimal] = None
    extra_paid_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    processing_fee: Optional[Decimal] = None
    net_settlement_amount: Optional[Decimal] = None
    settlement_status: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None
    bank_account: Optional[str] = None
    processed_by: Optional[int] = None
    transaction_date: Optional[date] = None
    settlement_date: Optional[date] = None
    comments: Optional[str] = None

    @field_validator("bill_amount")
    @classmethod
    def _positive_bill(cls, value):
        if value is not None and value <= 0:
            raise ValueError("Bill amount must be a positive number")
        return value

    @field_validator("commission_percentage")
    @classmethod
    def _commission_range(cls, value):
        if value is not None and not (0 <= value <= 100):
            raise ValueError("Commission percentage must be between 0 and 100")
        return value

    @field_validator("settlement_amount")
    @classmethod
    def _settlement_non_negative(cls, value):
        if value is not None and value < 0:
            raise ValueError("Settlement amount must be a non-negative number")
        return value

    @field_validator(*AMOUNT_FIELDS)
    @classmethod
    def _amount_non_negative(cls, value, info):
        if value is not None and value < 0:
            raise ValueError(f"{info.field_name} must be a non-negative number")
        return value


class SettlementCreate(SettlementUpdate):
    store_id: int
    user_id: int
    bill_amount: Decimal
    commission_percentage: Decimal
    settlement_amount: Decimal


class SettlementStatusChange(Payload):
    settlement_status: str
