from datetime import datetime
from decimal import Decimal
from sqlalchemy import DateTime, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class Referral(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "referrals"
    referrer_user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    referred_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    referral_status: Mapped[str] = mapped_column(String(30), default="link_sent", nullable=False)  # link_sent|signed_up|transaction_made
    reward_earned: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)
    referred_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    signup_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    first_transaction_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
