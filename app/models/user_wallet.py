from decimal import Decimal
from sqlalchemy import Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class UserWallet(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "user_wallets"
    user_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    available_cashback: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_cashback_earned: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_cashback_redeemed: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    total_coupon_redeemed: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
