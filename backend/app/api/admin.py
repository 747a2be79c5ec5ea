"""Admin endpoints: dashboard, doctor management, appointments and the audit log viewer."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RecordNotFound
from ..core.permissions import (
    PERM_MANAGE_ALL_APPOINTMENTS,
    PERM_MANAGE_DOCTORS,
    PERM_VIEW_ADMIN_DASHBOARD,
    PERM_VIEW_AUDIT_LOGS,
    require_permission,
)
from ..core.security import Principal, get_password_hash
from ..models.appointment import Appointment
from ..models.audit import AuditLog
from ..models.base import get_db, generate_uuid
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.user import User
from ..services.image_storage import commit_or_discard, image_storage
from ..services.patient_resolver import AppointmentView, CamelModel
from .doctor import DoctorResponse, MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

LATEST_APPOINTMENTS = 5


class DashData(CamelModel):
    doctors: int
    appointments: int
    patients: int
    latest_appointments: List[AppointmentView]


class DashboardResponse(BaseModel):
    success: bool = True
    dash_data: DashData = Field(serialization_alias="dashData")


class DoctorsResponse(BaseModel):
    success: bool = True
    doctors: List[DoctorResponse]


class AppointmentsResponse(BaseModel):
    success: bool = True
    appointments: List[AppointmentView]


class AvailabilityRequest(CamelModel):
    doc_id: str


class CancelRequest(CamelModel):
    appointment_id: str


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    role: Optional[str]
    action: str
    resource_type: str
    resource_id: str
    ip_address: Optional[str]
    request_method: Optional[str]
    request_path: Optional[str]
    status_code: Optional[int]
    created_at: datetime


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_VIEW_ADMIN_DASHBOARD)),
):
    latest = (
        db.query(Appointment)
        .options(joinedload(Appointment.doctor))
        .order_by(Appointment.date.desc())
        .limit(LATEST_APPOINTMENTS)
        .all()
    )
    return DashboardResponse(
        dash_data=DashData(
            doctors=db.query(Doctor).count(),
            appointments=db.query(Appointment).count(),
            # Patients from both identity stores
            patients=db.query(User).count() + db.query(Patient).count(),
            latest_appointments=[AppointmentView.model_validate(a) for a in latest],
        )
    )


@router.get("/all-doctors", response_model=DoctorsResponse)
def all_doctors(
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_MANAGE_DOCTORS)),
):
    doctors = db.query(Doctor).order_by(Doctor.created_at.desc()).all()
    return DoctorsResponse(doctors=[DoctorResponse.model_validate(d) for d in doctors])


@router.post("/add-doctor", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def add_doctor(
    name: str = Form(...),
    email: str = Form(...),
    password: str = Form(...),
    speciality: str = Form(...),
    degree: Optional[str] = Form(None),
    experience: Optional[int] = Form(None),
    about: Optional[str] = Form(None),
    fees: Optional[float] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_MANAGE_DOCTORS)),
):
    """Admin-only: create a doctor account, optionally with a profile image."""
    if len(password) < 8:
        raise HTTPException(status_code=400, detail="Please enter a strong password")
    if db.query(Doctor).filter(Doctor.email == email).first():
        raise HTTPException(status_code=400, detail="Email already registered")

    doctor = Doctor(
        id=generate_uuid(),
        name=name,
        email=email,
        hashed_password=get_password_hash(password),
        speciality=speciality,
        degree=degree,
        experience=experience,
        about=about,
        fees=fees,
    )
    stored = None
    if image is not None:
        image_data = await image.read()
        try:
            stored = image_storage.store(image_data, owner_id=doctor.id, original_filename=image.filename or "")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        doctor.image = stored["image_url"]

    db.add(doctor)
    try:
        commit_or_discard(db, stored)
    except IntegrityError:
        # Another request registered the same email after the check above
        raise HTTPException(status_code=400, detail="Email already registered")
    logger.info("Doctor %s (%s) added", doctor.id, email)
    return MessageResponse(message="Doctor Added")


@router.post("/change-availability", response_model=MessageResponse)
def change_availability(
    req: AvailabilityRequest,
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_MANAGE_DOCTORS)),
):
    doctor = db.query(Doctor).filter(Doctor.id == req.doc_id).first()
    if not doctor:
        raise RecordNotFound("Doctor not found")
    doctor.available = not doctor.available
    db.commit()
    return MessageResponse(message="Availability Changed")


@router.get("/appointments", response_model=AppointmentsResponse)
def all_appointments(
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_MANAGE_ALL_APPOINTMENTS)),
):
    appointments = (
        db.query(Appointment)
        .options(joinedload(Appointment.doctor))
        .order_by(Appointment.date.desc())
        .all()
    )
    return AppointmentsResponse(appointments=[AppointmentView.model_validate(a) for a in appointments])


@router.post("/cancel-appointment", response_model=MessageResponse)
def cancel_appointment(
    req: CancelRequest,
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_MANAGE_ALL_APPOINTMENTS)),
):
    appointment = db.query(Appointment).filter(Appointment.id == req.appointment_id).first()
    if not appointment:
        raise RecordNotFound("Appointment not found")
    appointment.cancelled = True
    db.commit()
    return MessageResponse(message="Appointment Cancelled")


@router.get("/audit-logs", response_model=List[AuditLogResponse])
def get_audit_logs(
    user_id: Optional[str] = Query(None, description="Filter by user ID"),
    action: Optional[str] = Query(None, description="Filter by action type"),
    resource_type: Optional[str] = Query(None, description="Filter by resource type"),
    since: Optional[datetime] = Query(None, description="Filter records after this datetime"),
    until: Optional[datetime] = Query(None, description="Filter records before this datetime"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_VIEW_AUDIT_LOGS)),
):
    """Searchable audit log, admin only. Filterable by user, date range, action type."""
    q = db.query(AuditLog)
    if user_id:
        q = q.filter(AuditLog.user_id == user_id)
    if action:
        q = q.filter(AuditLog.action == action)
    if resource_type:
        q = q.filter(AuditLog.resource_type == resource_type)
    if since:
        q = q.filter(AuditLog.created_at >= since)
    if until:
        q = q.filter(AuditLog.created_at <= until)
    return q.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit).all()
