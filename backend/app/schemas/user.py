from pydantic import BaseModel, EmailStr, Field
from typing import Optional


class LoginSchema(BaseModel):
    email: EmailStr
    password: str


class RefreshSchema(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    refresh_token: str
    user: dict


class ServiceProfileUpdate(BaseModel):
    service: Optional[str] = None
    service_rate: Optional[float] = Field(default=None, ge=0)
    service_description: Optional[str] = None


class ServiceStatusUpdate(BaseModel):
    is_online: bool


class AvailabilityUpdate(BaseModel):
    availability: str
