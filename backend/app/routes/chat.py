# app/routes/chat.py
from fastapi import APIRouter, Body, Depends

from app.middleware.rbac import get_current_user
from app.routes.ws import relay_message
from skillconnect.db.database import get_db
from skillconnect.service import chat_service

chat_router = APIRouter(prefix="/chat", tags=["Chat"])


@chat_router.get("/")
async def chat_list(user: dict = Depends(get_current_user), db=Depends(get_db)):
    chats = await chat_service.chat_list(db, user)
    return {"success": True, "count": len(chats), "chats": chats}


@chat_router.get("/{booking_id}/messages")
async def chat_history(booking_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    messages = await chat_service.history(db, user["_id"], booking_id)
    return {"success": True, "count": len(messages), "messages": messages}


@chat_router.put("/{booking_id}/seen")
async def mark_seen(booking_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    updated = await chat_service.mark_seen(db, user["_id"], booking_id)
    return {"success": True, "message": "Marked as read", "updated": updated}


@chat_router.post("/{booking_id}/messages", status_code=201)
async def send_message(
    booking_id: str, text: str = Body(..., embed=True), user: dict = Depends(get_current_user), db=Depends(get_db)
):
    message = await relay_message(db, user["_id"], booking_id, text)
    return {"success": True, "message": "Message sent", "chat_message": message}
