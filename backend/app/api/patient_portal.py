"""Patient portal: a self-registered patient's own appointments, prescriptions, bills and profile."""
import json
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.exceptions import PatientNotFound
from ..core.permissions import PERM_MANAGE_PATIENT_PROFILE, PERM_VIEW_OWN_RECORDS, require_permission
from ..core.security import Principal
from ..models.base import get_db
from ..models.user import User
from ..services.image_storage import commit_or_discard, image_storage
from ..services.patient_resolver import (
    AppointmentView,
    CamelModel,
    DoctorSummary,
    PatientView,
    normalize_profile,
    patient_resolver,
)
from .doctor import MessageResponse
from .prescriptions import PrescriptionListResponse, PrescriptionView, prescriptions_for_patient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patient", tags=["patient portal"])


class PortalProfile(PatientView):
    image: Optional[str] = None


class PortalProfileResponse(BaseModel):
    success: bool = True
    profile_data: PortalProfile = Field(serialization_alias="profileData")


class PatientDashData(CamelModel):
    upcoming_appointments: int
    completed_appointments: int
    prescriptions: int
    outstanding_amount: float
    next_appointment: Optional[AppointmentView] = None


class PatientDashboardResponse(BaseModel):
    success: bool = True
    dash_data: PatientDashData = Field(serialization_alias="dashData")


class AppointmentListResponse(BaseModel):
    success: bool = True
    appointments: List[AppointmentView]


class Bill(CamelModel):
    appointment_id: str
    doctor: Optional[DoctorSummary] = None
    date: datetime
    amount: float
    paid: bool


class BillsResponse(CamelModel):
    success: bool = True
    bills: List[Bill]
    total: float
    paid: float
    outstanding: float


def _bills(appointments) -> List[Bill]:
    # Cancelled visits are never charged
    return [
        Bill(
            appointment_id=a.id,
            doctor=DoctorSummary.model_validate(a.doctor) if a.doctor else None,
            date=a.date,
            amount=a.amount or 0.0,
            paid=bool(a.payment),
        )
        for a in appointments
        if not a.cancelled
    ]


@router.get("/dashboard", response_model=PatientDashboardResponse)
def patient_dashboard(
    db: Session = Depends(get_db),
    patient: Principal = Depends(require_permission(PERM_VIEW_OWN_RECORDS)),
):
    appointments = patient_resolver.fetch_appointments(patient.id, db)
    now = datetime.utcnow()
    upcoming = sorted(
        (a for a in appointments if not a.cancelled and not a.is_completed and a.date >= now),
        key=lambda a: a.date,
    )
    return PatientDashboardResponse(
        dash_data=PatientDashData(
            upcoming_appointments=len(upcoming),
            completed_appointments=sum(1 for a in appointments if a.is_completed),
            prescriptions=len(prescriptions_for_patient(patient.id, db)),
            outstanding_amount=sum(b.amount for b in _bills(appointments) if not b.paid),
            next_appointment=AppointmentView.model_validate(upcoming[0]) if upcoming else None,
        )
    )


@router.get("/appointments", response_model=AppointmentListResponse)
def patient_appointments(
    db: Session = Depends(get_db),
    patient: Principal = Depends(require_permission(PERM_VIEW_OWN_RECORDS)),
):
    """Own appointments under either reference field, newest first."""
    appointments = patient_resolver.fetch_appointments(patient.id, db)
    return AppointmentListResponse(appointments=[AppointmentView.model_validate(a) for a in appointments])


@router.get("/prescriptions", response_model=PrescriptionListResponse)
def own_prescriptions(
    db: Session = Depends(get_db),
    patient: Principal = Depends(require_permission(PERM_VIEW_OWN_RECORDS)),
):
    return PrescriptionListResponse(
        prescriptions=[PrescriptionView.model_validate(p) for p in prescriptions_for_patient(patient.id, db)]
    )


@router.get("/bills", response_model=BillsResponse)
def patient_bills(
    db: Session = Depends(get_db),
    patient: Principal = Depends(require_permission(PERM_VIEW_OWN_RECORDS)),
):
    bills = _bills(patient_resolver.fetch_appointments(patient.id, db))
    total = sum(b.amount for b in bills)
    paid = sum(b.amount for b in bills if b.paid)
    return BillsResponse(bills=bills, total=total, paid=paid, outstanding=total - paid)


@router.get("/profile", response_model=PortalProfileResponse)
def patient_profile(
    db: Session = Depends(get_db),
    patient: Principal = Depends(require_permission(PERM_MANAGE_PATIENT_PROFILE)),
):
    profile = patient_resolver.find_profile(patient.id, db)
    if profile is None:
        raise PatientNotFound()
    view = normalize_profile(profile)
    return PortalProfileResponse(
        profile_data=PortalProfile.model_validate({**view.model_dump(), "image": profile.record.image})
    )


@router.put("/profile", response_model=MessageResponse)
async def update_patient_profile(
    name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    date_of_birth: Optional[date] = Form(None),
    blood_group: Optional[str] = Form(None),
    address: Optional[str] = Form(None, description="JSON object, e.g. {\"line1\": \"...\"}"),
    photograph: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    patient: Principal = Depends(require_permission(PERM_MANAGE_PATIENT_PROFILE)),
):
    user = db.query(User).filter(User.id == patient.id).first()
    if name is not None:
        if not name.strip():
            raise HTTPException(status_code=400, detail="Name cannot be empty")
        user.name = name.strip()
    if phone is not None:
        user.phone = phone
    if gender is not None:
        user.gender = gender
    if date_of_birth is not None:
        if date_of_birth > date.today():
            raise HTTPException(status_code=400, detail="Date of birth cannot be in the future")
        user.date_of_birth = date_of_birth
    if blood_group is not None:
        user.blood_group = blood_group
    if address is not None:
        try:
            parsed = json.loads(address)
        except ValueError:
            raise HTTPException(status_code=400, detail="Address must be a JSON object")
        if not isinstance(parsed, dict):
            raise HTTPException(status_code=400, detail="Address must be a JSON object")
        user.address = parsed

    stored = None
    if photograph is not None:
        image_data = await photograph.read()
        try:
            stored = image_storage.store(image_data, owner_id=user.id, original_filename=photograph.filename or "")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        user.image = stored["image_url"]
    commit_or_discard(db, stored)
    logger.info("Patient %s updated their profile", user.id)
    return MessageResponse(message="Profile Updated")
