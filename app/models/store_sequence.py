from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class StoreSequence(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "stores_sequence"
    store_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    sequence_no: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
