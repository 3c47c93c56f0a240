# skillconnect/models/chat.py
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from bson import ObjectId
from pydantic import Field

from skillconnect.models.common import Document, utcnow


class MessageStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    SEEN = "seen"


class ChatMessage(Document):
    booking: ObjectId
    sender: ObjectId
    text: str
    status: MessageStatus = MessageStatus.SENT
    seen_by: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
