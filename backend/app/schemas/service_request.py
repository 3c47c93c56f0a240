from pydantic import BaseModel, Field
from typing import Optional


class ServiceRequestCreate(BaseModel):
    name: str
    phone: str
    address: str
    type_of_work: str
    time: str
    date: Optional[str] = None
    budget: float = Field(default=0, ge=0)
    notes: Optional[str] = ""
    location: Optional[str] = None
    target_provider: Optional[str] = None


class ServiceRequestUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    type_of_work: Optional[str] = None
    time: Optional[str] = None
    date: Optional[str] = None
    budget: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    location: Optional[str] = None
