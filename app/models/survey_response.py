from sqlalchemy import Integer, Text
from sqlalchemy.orm import Mapped, mapped_column
from app.db.session import Base
from app.models.common import IntIdMixin, TimestampMixin

class SurveyResponse(Base, IntIdMixin, TimestampMixin):
    __tablename__ = "survey_responses"
    survey_form_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    question_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    answer: Mapped[str | None] = mapped_column(Text, nullable=True)
