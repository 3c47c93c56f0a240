from datetime import datetime
from pydantic import BaseModel
from typing import Optional


class AppointmentCreate(BaseModel):
    provider_id: str
    appointment_date: datetime
    location: Optional[str] = ""


class AppointmentUpdate(BaseModel):
    status: Optional[str] = None
    remarks: Optional[str] = None
    result: Optional[str] = None


class JobFairCreate(BaseModel):
    title: str
    description: Optional[str] = ""
    date: str
    time: Optional[str] = ""
    location: str
