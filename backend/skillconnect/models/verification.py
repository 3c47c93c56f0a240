# skillconnect/models/verification.py
from datetime import datetime
from enum import Enum
from typing import Optional

from bson import ObjectId
from pydantic import Field

from skillconnect.models.common import Document, utcnow


class AppointmentStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class AppointmentResult(str, Enum):
    PASSED = "Passed"
    FAILED = "Failed"


TERMINAL_APPOINTMENT_STATUSES = {AppointmentStatus.COMPLETED.value, AppointmentStatus.CANCELLED.value}


def parse_appointment_status(value: str) -> AppointmentStatus:
    # Older clients send "Complete".
    if value == "Complete":
        return AppointmentStatus.COMPLETED
    return AppointmentStatus(value)


class VerificationAppointment(Document):
    provider: ObjectId
    scheduled_by: ObjectId
    appointment_date: datetime
    location: str = ""
    status: AppointmentStatus = AppointmentStatus.PENDING
    remarks: str = ""
    result: Optional[AppointmentResult] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class JobFair(Document):
    title: str
    description: str = ""
    date: str
    time: str = ""
    location: str
    created_by: Optional[ObjectId] = None
    created_at: datetime = Field(default_factory=utcnow)
