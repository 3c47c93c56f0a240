# skillconnect/models/service_request.py
from datetime import datetime
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import Field

from skillconnect.models.common import Document, utcnow


class RequestStatus(str, Enum):
    OPEN = "Open"
    ASSIGNED = "Assigned"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


TERMINAL_REQUEST_STATUSES = {RequestStatus.COMPLETED.value, RequestStatus.CANCELLED.value}


class ServiceRequest(Document):
    requester: ObjectId
    name: str
    phone: str
    address: str
    type_of_work: str
    time: str
    date: Optional[str] = None
    budget: float = 0
    notes: str = ""
    location: Optional[str] = None
    target_provider: Optional[ObjectId] = None
    service_provider: Optional[ObjectId] = None
    status: RequestStatus = RequestStatus.OPEN
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
