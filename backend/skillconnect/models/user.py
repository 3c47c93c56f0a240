# skillconnect/models/user.py
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from skillconnect.models.common import Document, utcnow


class Role(str, Enum):
    COMMUNITY_MEMBER = "Community Member"
    SERVICE_PROVIDER = "Service Provider"
    ADMIN = "Admin"


class Availability(str, Enum):
    AVAILABLE = "Available"
    CURRENTLY_WORKING = "Currently Working"
    NOT_AVAILABLE = "Not Available"


class User(Document):
    username: str
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str = ""
    birthdate: Optional[str] = None
    employed: Optional[str] = None
    password: str

    role: Role = Role.COMMUNITY_MEMBER
    verified: bool = False
    is_applying_provider: bool = False
    banned: bool = False

    # Provider attributes
    skills: List[str] = Field(default_factory=list)
    certificates: List[str] = Field(default_factory=list)
    valid_id: Optional[str] = None
    profile_pic: str = ""
    service: str = ""
    service_rate: float = 0
    service_description: str = ""
    is_online: bool = True
    availability: Availability = Availability.AVAILABLE

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


def normalize_skills(raw) -> List[str]:
    """Accept a list or a comma separated string; lowercase, trim, drop empties."""
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = list(raw)
    return [str(item).strip().lower() for item in items if str(item).strip()]


def full_name(user: dict) -> str:
    return f"{user.get('first_name', '')} {user.get('last_name', '')}".strip() or user.get("username", "")
