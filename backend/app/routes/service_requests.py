# app/routes/service_requests.py
from fastapi import APIRouter, Depends

from app.middleware.rbac import get_current_provider, get_current_user
from app.schemas.service_request import ServiceRequestCreate, ServiceRequestUpdate
from skillconnect.db.database import get_db
from skillconnect.serialize import serialize_doc
from skillconnect.service import matching_service, request_service
from skillconnect.service.notification_service import NotificationDispatcher, get_dispatcher

service_request_router = APIRouter(prefix="/service-requests", tags=["Service Requests"])


@service_request_router.post("/", status_code=201)
async def post_request(data: ServiceRequestCreate, user: dict = Depends(get_current_user), db=Depends(get_db)):
    request = await request_service.create_request(db, user, data.model_dump())
    return {"success": True, "message": "✅ Service request posted", "request": serialize_doc(request)}


@service_request_router.get("/my-requests")
async def my_requests(user: dict = Depends(get_current_user), db=Depends(get_db)):
    requests = await request_service.list_requests_for_requester(db, user)
    return {"success": True, "count": len(requests), "requests": requests}


# ------------------------
# Provider views
# ------------------------
@service_request_router.get("/available")
async def available_requests(user: dict = Depends(get_current_provider), db=Depends(get_db)):
    requests = await matching_service.list_visible_requests(db, user)
    return {"success": True, "count": len(requests), "requests": requests}


@service_request_router.get("/matching")
async def matching_requests(user: dict = Depends(get_current_provider), db=Depends(get_db)):
    requests = await matching_service.list_strict_matches(db, user)
    return {"success": True, "count": len(requests), "requests": requests}


@service_request_router.get("/assigned")
async def assigned_requests(user: dict = Depends(get_current_provider), db=Depends(get_db)):
    requests = await request_service.list_assigned_to_provider(db, user)
    return {"success": True, "count": len(requests), "requests": requests}


@service_request_router.get("/{request_id}")
async def get_request(request_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    request = await request_service.get_request(db, user, request_id)
    return {"success": True, "request": serialize_doc(request)}


@service_request_router.put("/{request_id}")
async def update_request(
    request_id: str, data: ServiceRequestUpdate, user: dict = Depends(get_current_user), db=Depends(get_db)
):
    request = await request_service.update_request(db, user, request_id, data.model_dump(exclude_unset=True))
    return {"success": True, "message": "Service request updated", "request": serialize_doc(request)}


# ------------------------
# Lifecycle
# ------------------------
@service_request_router.post("/{request_id}/accept")
async def accept_request(
    request_id: str,
    user: dict = Depends(get_current_provider),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    request, booking = await request_service.accept_request(db, user, request_id, dispatcher)
    return {
        "success": True,
        "message": "✅ Request accepted",
        "request": serialize_doc(request),
        "booking": serialize_doc(booking),
    }


@service_request_router.post("/{request_id}/complete")
async def complete_request(
    request_id: str,
    user: dict = Depends(get_current_provider),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    request = await request_service.complete_request(db, user, request_id, dispatcher)
    return {"success": True, "message": "Service marked as completed", "request": serialize_doc(request)}


@service_request_router.post("/{request_id}/reject")
async def reject_request(
    request_id: str,
    user: dict = Depends(get_current_provider),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    request = await request_service.reject_request(db, user, request_id, dispatcher)
    return {"success": True, "message": "Request declined", "request": serialize_doc(request)}


@service_request_router.post("/{request_id}/cancel")
async def cancel_request(
    request_id: str,
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    request = await request_service.cancel_request(db, user, request_id, dispatcher)
    return {"success": True, "message": "Service request cancelled", "request": serialize_doc(request)}
