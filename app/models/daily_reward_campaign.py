from datetime import date
from sqlalchemy import Boolean, Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class DailyRewardCampaign(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "daily_reward_campaigns"
    campaign_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    repeat_interval: Mapped[str] = mapped_column(String(20), nullable=False)
    custom_interval_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_attempts_per_interval: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
