# app/routes/admin.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, EmailStr

from app.middleware.rbac import get_current_admin, get_current_user
from app.schemas.verification import AppointmentCreate, AppointmentUpdate, JobFairCreate
from app.utils.hash_utils import hash_password
from skillconnect.db.database import get_db
from skillconnect.models.user import Role
from skillconnect.serialize import serialize_doc
from skillconnect.service import request_service, user_service, verification_service
from skillconnect.service.notification_service import NotificationDispatcher, get_dispatcher

logger = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/admin", tags=["Admin"])
job_fair_router = APIRouter(prefix="/job-fairs", tags=["Job Fairs"])


class AdminRegisterSchema(BaseModel):
    username: str
    first_name: str
    last_name: str
    email: EmailStr
    phone: str
    password: str
    confirm_password: str
    address: str = ""
    birthdate: Optional[str] = None


# ------------------------
# Users
# ------------------------
@admin_router.get("/users")
async def list_users(_: dict = Depends(get_current_admin), db=Depends(get_db)):
    users = await verification_service.list_users(db)
    return {"success": True, "count": len(users), "users": users}


@admin_router.put("/users/{user_id}/verify")
async def verify_user(user_id: str, _: dict = Depends(get_current_admin), db=Depends(get_db)):
    user = await verification_service.verify_user(db, user_id)
    return {"success": True, "message": "✅ User verified", "user": serialize_doc(user)}


@admin_router.put("/users/{user_id}/ban")
async def ban_user(user_id: str, admin: dict = Depends(get_current_admin), db=Depends(get_db)):
    user = await verification_service.ban_user(db, user_id)
    logger.warning("User %s banned by admin %s", user_id, admin["_id"])
    return {"success": True, "message": "User banned", "user": serialize_doc(user)}


@admin_router.post("/register", status_code=201)
async def register_admin(data: AdminRegisterSchema, _: dict = Depends(get_current_admin), db=Depends(get_db)):
    fields = {**data.model_dump(), "email": data.email.lower(), "role": Role.ADMIN.value}
    user_service.validate_passwords(data.password, data.confirm_password)
    await user_service.ensure_identity_available(db, data.username, fields["email"], data.phone)
    fields.pop("confirm_password")
    fields["password"] = hash_password(data.password)
    user = await user_service.create_user(db, fields)
    return {"success": True, "message": "✅ Admin account created", "user": serialize_doc(user)}


# ------------------------
# Service requests
# ------------------------
@admin_router.get("/service-requests")
async def search_service_requests(
    skill: Optional[str] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: str = Query("newest", pattern="^(newest|oldest)$"),
    _: dict = Depends(get_current_admin),
    db=Depends(get_db),
):
    result = await request_service.search_requests(db, skill=skill, status=status, page=page, limit=limit, sort=sort)
    return {"success": True, **result}


# ------------------------
# Verification appointments
# ------------------------
@admin_router.get("/pending-providers")
async def pending_providers(_: dict = Depends(get_current_admin), db=Depends(get_db)):
    users = await verification_service.pending_applications(db)
    return {"success": True, "count": len(users), "users": users}


@admin_router.post("/appointments", status_code=201)
async def schedule_appointment(
    data: AppointmentCreate,
    admin: dict = Depends(get_current_admin),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    appointment = await verification_service.schedule_appointment(
        db, admin, data.provider_id, data.appointment_date, data.location, dispatcher
    )
    return {"success": True, "message": "✅ Appointment scheduled", "appointment": serialize_doc(appointment)}


@admin_router.get("/appointments")
async def list_appointments(_: dict = Depends(get_current_admin), db=Depends(get_db)):
    appointments = await verification_service.list_appointments(db)
    return {"success": True, "count": len(appointments), "appointments": appointments}


@admin_router.put("/appointments/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    _: dict = Depends(get_current_admin),
    db=Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    appointment = await verification_service.update_appointment(
        db, appointment_id, dispatcher, status=data.status, remarks=data.remarks, result=data.result
    )
    return {"success": True, "message": "Appointment updated", "appointment": serialize_doc(appointment)}


@admin_router.delete("/appointments/{appointment_id}")
async def delete_appointment(appointment_id: str, _: dict = Depends(get_current_admin), db=Depends(get_db)):
    await verification_service.delete_appointment(db, appointment_id)
    return {"success": True, "message": "Appointment deleted"}


# ------------------------
# Job fairs
# ------------------------
@job_fair_router.post("/", status_code=201)
async def create_job_fair(data: JobFairCreate, admin: dict = Depends(get_current_admin), db=Depends(get_db)):
    fair = await verification_service.create_job_fair(db, admin, data.model_dump())
    return {"success": True, "message": "✅ Job fair created", "job_fair": serialize_doc(fair)}


@job_fair_router.get("/latest")
async def latest_job_fair(_: dict = Depends(get_current_user), db=Depends(get_db)):
    fair = await verification_service.latest_job_fair(db)
    return {"success": True, "job_fair": serialize_doc(fair)}
