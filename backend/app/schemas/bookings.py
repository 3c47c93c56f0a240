from pydantic import BaseModel, Field
from typing import Optional


class BookingStatusUpdate(BaseModel):
    status: str


class ReviewCreate(BaseModel):
    booking_id: str
    rating: int = Field(..., ge=1, le=5)
    comments: Optional[str] = ""
