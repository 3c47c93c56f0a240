# skillconnect/models/booking.py
from datetime import datetime
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import Field

from skillconnect.models.common import Document, utcnow


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# Transitions participants may make directly; Completed and Cancelled
# follow the linked service request.
PARTICIPANT_TRANSITIONS = {
    BookingStatus.CONFIRMED.value: [BookingStatus.PENDING.value],
    BookingStatus.IN_PROGRESS.value: [BookingStatus.CONFIRMED.value],
}


class Booking(Document):
    requester: ObjectId
    provider: ObjectId
    service_request: Optional[ObjectId] = None
    date: Optional[str] = None
    time: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Review(Document):
    booking: ObjectId
    reviewer: ObjectId
    reviewee: ObjectId
    rating: int
    comments: str = ""
    created_at: datetime = Field(default_factory=utcnow)
