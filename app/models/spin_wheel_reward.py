from decimal import Decimal
from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class SpinWheelReward(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "spin_wheel_rewards"
    campaign_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    reward_type: Mapped[str] = mapped_column(String(30), nullable=False)
    reward_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    coupon_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    probability_weight: Mapped[int] = mapped_column(Integer, nullable=False)
    display_text: Mapped[str] = mapped_column(String(100), nullable=False)
    display_color: Mapped[str] = mapped_column(String(20), default="#3b82f6", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
