from decimal import Decimal
from sqlalchemy import Boolean, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import TimestampMixin

class RewardType(Base, TimestampMixin):
    __tablename__ = "reward_types"
    reward_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    reward_name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    reward_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    normal_users_reward_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    vip_users_reward_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
