from decimal import Decimal
from typing import Any, List, Optional

from pydantic import field_validator

from app.schemas.common import Payload

SURVEY_FIELDS = ("title", "description", "reward_points", "is_active")
QUESTION_FIELDS = ("question", "question_type", "options", "is_required", "display_order")


def split_options(value: Any) -> Optional[list]:
    """Accept a JSON list or a comma separated string; blank entries are dropped."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        raise ValueError("options must be a list or a comma separated string")
    items = [str(item).strip() for item in value]
    return [item for item in items if item] or None


class QuestionUpdate(Payload):
    question: Optional[str] = None
    question_type: Optional[str] = None
    options: Optional[List[str]] = None
    is_required: Optional[bool] = None
    display_order: Optional[int] = None

    @field_validator("options", mode="before")
    @classmethod
    def _options(cls, value):
        return split_options(value)


class QuestionCreate(QuestionUpdate):
    question: str
    question_type: str
    is_required: bool = False


class SurveyQuestionIn(QuestionUpdate):
    question: str
    question_type: str = "text"
    is_required: bool = False


class SurveyUpdate(Payload):
    title: Optional[str] = None
    description: Optional[str] = None
    reward_points: Optional[Decimal] = None
    is_active: Optional[bool] = None

    @field_validator("reward_points")
    @classmethod
    def _points(cls, value):
        if value is not None and value < 0:
            raise ValueError("Reward points must be a non-negative number")
        return value


class SurveyCreate(SurveyUpdate):
    title: str
    description: str
    reward_points: Decimal
    is_active: bool = True
    questions: List[SurveyQuestionIn] = []
