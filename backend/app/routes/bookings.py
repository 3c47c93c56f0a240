# app/routes/bookings.py
from fastapi import APIRouter, Depends

from app.middleware.rbac import get_current_user
from app.schemas.bookings import BookingStatusUpdate, ReviewCreate
from skillconnect.db.database import get_db
from skillconnect.serialize import serialize_doc
from skillconnect.service import booking_service
from skillconnect.service.notification_service import NotificationDispatcher, get_dispatcher

booking_router = APIRouter(prefix="/bookings", tags=["Bookings"])
review_router = APIRouter(prefix="/reviews", tags=["Reviews"])


@booking_router.get("/")
async def my_bookings(user: dict = Depends(get_current_user), db=Depends(get_db)):
    bookings = await booking_service.list_bookings(db, user)
    return {"success": True, "count": len(bookings), "bookings": bookings}


@booking_router.get("/{booking_id}")
async def get_booking(booking_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    booking = await booking_service.get_booking(db, user, booking_id)
    return {"success": True, "booking": serialize_doc(booking)}


@booking_router.put("/{booking_id}/status")
async def update_booking_status(
    booking_id: str,
    data: BookingStatusUpdate,
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    booking = await booking_service.update_booking_status(db, user, booking_id, data.status, dispatcher)
    return {"success": True, "message": f"Booking status updated to {booking['status']}", "booking": serialize_doc(booking)}


@review_router.post("/", status_code=201)
async def create_review(
    data: ReviewCreate,
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    review = await booking_service.create_review(db, user, data.booking_id, data.rating, data.comments, dispatcher)
    return {"success": True, "message": "✅ Review submitted", "review": serialize_doc(review)}
