from datetime import date
from sqlalchemy import Date, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class UserProfile(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "user_profiles"
    user_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    profile_picture: Mapped[str | None] = mapped_column(String(500), nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    anniversary_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    spouse_birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    address_building: Mapped[str | None] = mapped_column(String(200), nullable=True)
    address_street: Mapped[str | None] = mapped_column(String(200), nullable=True)
    address_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_pincode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    profile_completion_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
