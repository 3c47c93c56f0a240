# skillconnect/models/notification.py
from datetime import datetime
from typing import Any, Dict

from bson import ObjectId
from pydantic import Field

from skillconnect.models.common import Document, utcnow


class Notification(Document):
    user: ObjectId
    title: str
    message: str
    meta: Dict[str, Any] = Field(default_factory=dict)
    read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
