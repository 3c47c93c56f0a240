# skillconnect/models/common.py
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Document(BaseModel):
    """Base for documents written to MongoDB (ObjectId references allowed)."""

    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True, validate_default=True)

    def to_mongo(self) -> dict:
        return self.model_dump()
