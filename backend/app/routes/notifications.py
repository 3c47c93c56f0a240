# app/routes/notifications.py
from fastapi import APIRouter, Depends

from app.middleware.rbac import get_current_user
from skillconnect.db.database import get_db
from skillconnect.service import notification_service

notification_router = APIRouter(prefix="/notifications", tags=["Notifications"])


@notification_router.get("/")
async def list_notifications(unread: bool = False, user: dict = Depends(get_current_user), db=Depends(get_db)):
    notifications = await notification_service.list_notifications(db, user["_id"], unread_only=unread)
    return {"success": True, "count": len(notifications), "notifications": notifications}


@notification_router.put("/read-all")
async def mark_all_read(user: dict = Depends(get_current_user), db=Depends(get_db)):
    updated = await notification_service.mark_all_read(db, user["_id"])
    return {"success": True, "message": "Marked as read", "updated": updated}


@notification_router.put("/{notification_id}/read")
async def mark_read(notification_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    notification = await notification_service.mark_read(db, user["_id"], notification_id)
    return {"success": True, "message": "Marked as read", "notification": notification}
