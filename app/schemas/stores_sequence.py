from typing import List, Optional

from pydantic import Field

from app.schemas.common import Payload

SEQUENCE_FIELDS = ("store_id", "sequence_no", "is_active")


class StoreSequenceUpdate(Payload):
    store_id: Optional[int] = None
    sequence_no: Optional[int] = None
    is_active: Optional[bool] = None


class StoreSequenceCreate(StoreSequenceUpdate):
    store_id: int


class SequencePosition(Payload):
    id: int
    sequence_no: int


class BulkSequenceUpdate(Payload):
    sequences: List[SequencePosition] = Field(default_factory=list)
