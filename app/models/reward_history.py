from decimal import Decimal
from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class RewardHistory(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "reward_history"
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    transaction_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    store_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    reward_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    credit_debit: Mapped[str] = mapped_column(String(10), nullable=False)  # credit|debit
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
