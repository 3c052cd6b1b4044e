import re
from typing import Optional

from pydantic import field_validator

from app.schemas.common import Payload

VIDEO_URL_RE = re.compile(r"^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})[/\w .-]*/?$")

FAQ_FIELDS = ("question", "answer", "category", "display_order", "is_active")
TERMS_FIELDS = ("title", "description", "is_active")
VIDEO_FIELDS = ("title", "description", "video_link", "sequence", "is_active")


class FaqUpdate(Payload):
    question: Optional[str] = None
    answer: Optional[str] = None
    category: Optional[str] = None
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class FaqCreate(FaqUpdate):
    question: str
    answer: str
    category: str
    is_active: bool = True


class TermsUpdate(Payload):
    title: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None


class TermsCreate(TermsUpdate):
    title: str
    description: str
    is_active: bool = True


class VideoUpdate(Payload):
    title: Optional[str] = None
    description: Optional[str] = None
    video_link: Optional[str] = None
    sequence: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("video_link")
    @classmethod
    def _link(cls, value):
        if value is not None and not VIDEO_URL_RE.match(value):
            raise ValueError("Invalid video URL format")
        return value


class VideoCreate(VideoUpdate):
    title: str
    video_link: str
    is_active: bool = True
