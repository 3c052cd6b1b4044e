from datetime import datetime
from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, utcnow

class UserDailySpin(Base, IntIdMixin):
    __tablename__ = "user_daily_spins"
    campaign_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    reward_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    spun_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
