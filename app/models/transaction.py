from decimal import Decimal
from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class Transaction(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "transactions"
    transaction_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    store_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    coupon_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    bill_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    vendor_discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    coupon_discount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    cashback_used: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    final_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    cashback_earned: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(30), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_msg: Mapped[str | None] = mapped_column(Text, nullable=True)
