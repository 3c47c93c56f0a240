# app/routes/profile.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.middleware.rbac import get_current_provider, get_current_user
from app.schemas.user import AvailabilityUpdate, ServiceProfileUpdate, ServiceStatusUpdate
from app.utils.b2_utils import B2AssetStore, get_asset_store
from skillconnect.core.exceptions import NotFoundError
from skillconnect.db.database import get_db
from skillconnect.serialize import serialize_doc
from skillconnect.service import dashboard_service, user_service, verification_service
from skillconnect.service.booking_service import reviews_for_user
from skillconnect.service.notification_service import NotificationDispatcher, get_dispatcher

profile_router = APIRouter(prefix="/users", tags=["Profile"])


# ------------------------
# Own profile
# ------------------------
@profile_router.put("/profile")
async def update_profile(
    username: Optional[str] = Form(None),
    first_name: Optional[str] = Form(None),
    last_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    birthdate: Optional[str] = Form(None),
    employed: Optional[str] = Form(None),
    skills: Optional[str] = Form(None),
    profile_pic: Optional[UploadFile] = File(None),
    valid_id: Optional[UploadFile] = File(None),
    certificates: Optional[List[UploadFile]] = File(None),
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
    store: B2AssetStore = Depends(get_asset_store),
):
    changes = {
        "username": username,
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "phone": phone,
        "address": address,
        "birthdate": birthdate,
        "employed": employed,
    }
    assets = {}
    if profile_pic and profile_pic.filename:
        assets["profile_pic"] = await store.upload(profile_pic, "profile-pics", images_only=True)
    if valid_id and valid_id.filename:
        assets["valid_id"] = await store.upload(valid_id, "valid-ids", images_only=True)
    new_certificates = await store.upload_many(certificates or [], "certificates")
    if new_certificates:
        assets["certificates"] = list(user.get("certificates") or []) + new_certificates

    updated = await user_service.update_profile(db, user, changes, skills=skills, assets=assets)
    return {"success": True, "message": "✅ Profile updated successfully", "user": serialize_doc(updated)}


@profile_router.post("/apply-provider")
async def apply_provider(
    skills: str = Form(...),
    valid_id: Optional[UploadFile] = File(None),
    certificates: Optional[List[UploadFile]] = File(None),
    user: dict = Depends(get_current_user),
    db=Depends(get_db),
    store: B2AssetStore = Depends(get_asset_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    valid_id_ref = None
    if valid_id and valid_id.filename:
        valid_id_ref = await store.upload(valid_id, "valid-ids", images_only=True)
    certificate_refs = await store.upload_many(certificates or [], "certificates")

    updated = await user_service.apply_provider(
        db, user, skills, certificate_refs, dispatcher, valid_id=valid_id_ref
    )
    return {
        "success": True,
        "message": "Application submitted. Please wait for your verification appointment.",
        "user": serialize_doc(updated),
    }


@profile_router.get("/valid-id")
async def get_valid_id_url(user: dict = Depends(get_current_user), store: B2AssetStore = Depends(get_asset_store)):
    if not user.get("valid_id"):
        raise NotFoundError("No valid ID uploaded")
    return {"success": True, "url": await store.signed_url(user["valid_id"])}


# ------------------------
# Service provider settings
# ------------------------
@profile_router.get("/service-profile")
async def get_service_profile(user: dict = Depends(get_current_provider)):
    return {"success": True, "service_profile": user_service.service_profile(user)}


@profile_router.put("/service-profile")
async def update_service_profile(
    data: ServiceProfileUpdate, user: dict = Depends(get_current_provider), db=Depends(get_db)
):
    updated = await user_service.update_service_profile(
        db, user, data.service, data.service_rate, data.service_description
    )
    return {"success": True, "message": "Service profile updated", "service_profile": user_service.service_profile(updated)}


@profile_router.put("/service-status")
async def update_service_status(
    data: ServiceStatusUpdate, user: dict = Depends(get_current_provider), db=Depends(get_db)
):
    updated = await user_service.set_online(db, user, data.is_online)
    return {"success": True, "message": "Service status updated", "is_online": updated["is_online"]}


@profile_router.put("/availability")
async def update_availability(
    data: AvailabilityUpdate, user: dict = Depends(get_current_provider), db=Depends(get_db)
):
    updated = await user_service.set_availability(db, user, data.availability)
    return {"success": True, "message": "Availability updated", "availability": updated["availability"]}


@profile_router.get("/my-appointments")
async def my_appointments(user: dict = Depends(get_current_provider), db=Depends(get_db)):
    appointments = await verification_service.list_appointments(db, provider_id=user["_id"])
    return {"success": True, "count": len(appointments), "appointments": appointments}


@profile_router.get("/dashboard/stats")
async def dashboard_stats(user: dict = Depends(get_current_provider), db=Depends(get_db)):
    return {"success": True, "stats": await dashboard_service.provider_stats(db, user)}


@profile_router.get("/dashboard/recent-activity")
async def dashboard_recent_activity(user: dict = Depends(get_current_provider), db=Depends(get_db)):
    activities = await dashboard_service.recent_activity(db, user)
    return {"success": True, "count": len(activities), "activities": activities}


# ------------------------
# Public directory
# ------------------------
@profile_router.get("/providers")
async def verified_providers(db=Depends(get_db)):
    providers = await verification_service.list_verified_providers(db)
    return {"success": True, "count": len(providers), "providers": providers}


@profile_router.get("/{user_id}/reviews")
async def user_reviews(user_id: str, _: dict = Depends(get_current_user), db=Depends(get_db)):
    return {"success": True, **await reviews_for_user(db, user_id)}
