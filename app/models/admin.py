from datetime import datetime
from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class Admin(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "admins"
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), default="admin", nullable=False)  # super_admin|admin
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)  # active|inactive
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
