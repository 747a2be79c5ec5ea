"""Doctor-facing endpoints: public doctor list, login-protected dashboard, appointments and patient details."""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RecordNotFound
from ..core.permissions import (
    PERM_CONSULT_PATIENTS,
    PERM_MANAGE_DOCTOR_PROFILE,
    PERM_MANAGE_OWN_APPOINTMENTS,
    PERM_VIEW_DOCTOR_DASHBOARD,
    require_permission,
)
from ..core.security import Principal
from ..models.appointment import Appointment
from ..models.base import get_db
from ..models.doctor import Doctor
from ..services.doctor_directory import SortField, SortOrder, filter_and_sort_doctors, specialities
from ..services.image_storage import commit_or_discard, image_storage
from ..services.patient_resolver import (
    AppointmentView,
    CamelModel,
    PatientListItem,
    PatientSearchResult,
    ResolvedPatient,
    normalize_profile,
    patient_resolver,
    summarize_profile,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/doctor", tags=["doctor"])

LATEST_APPOINTMENTS = 5


class DoctorResponse(CamelModel):
    id: str = Field(alias="_id")
    name: str
    email: str
    image: Optional[str] = None
    speciality: Optional[str] = None
    degree: Optional[str] = None
    experience: Optional[int] = None
    about: Optional[str] = None
    available: bool
    fees: Optional[float] = None
    address: Optional[Dict[str, Any]] = None


class DoctorListResponse(BaseModel):
    success: bool = True
    doctors: List[DoctorResponse]
    specialities: List[str]


class DoctorProfileResponse(BaseModel):
    success: bool = True
    profile_data: DoctorResponse = Field(serialization_alias="profileData")


class AppointmentListResponse(BaseModel):
    success: bool = True
    appointments: List[AppointmentView]


class AppointmentAction(CamelModel):
    appointment_id: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class DoctorDashData(CamelModel):
    earnings: float
    appointments: int
    patients: int
    latest_appointments: List[AppointmentView]


class DoctorDashboardResponse(BaseModel):
    success: bool = True
    dash_data: DoctorDashData = Field(serialization_alias="dashData")


class DoctorPatientsResponse(BaseModel):
    success: bool = True
    patients: List[PatientListItem]


class ScheduledPatient(CamelModel):
    appointment: AppointmentView
    # None when the booking points at a patient that no longer exists
    patient: Optional[PatientSearchResult] = None


class ScheduledPatientsResponse(BaseModel):
    success: bool = True
    scheduled: List[ScheduledPatient]


def _own_appointments(db: Session, doctor: Principal) -> List[Appointment]:
    return (
        db.query(Appointment)
        .options(joinedload(Appointment.doctor))
        .filter(Appointment.doc_id == doctor.id)
        .order_by(Appointment.date.desc())
        .all()
    )


def _patient_ref(appointment: Appointment) -> Optional[str]:
    return appointment.user_id or appointment.patient


# ── Public ───────────────────────────────────────────────────────────────────


@router.get("/list", response_model=DoctorListResponse)
def doctor_list(
    search: Optional[str] = Query(None, description="Substring of name or speciality"),
    speciality: Optional[str] = Query(None, description="Exact speciality"),
    sort_by: str = Query(SortField.NAME, description=f"One of {SortField.ALL}"),
    order: str = Query(SortOrder.ASC, description=f"One of {SortOrder.ALL}"),
    db: Session = Depends(get_db),
):
    """Doctor finder used by the public site."""
    doctors = db.query(Doctor).all()
    try:
        matched = filter_and_sort_doctors(doctors, search, speciality, sort_by, order)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return DoctorListResponse(
        doctors=[DoctorResponse.model_validate(d) for d in matched],
        specialities=specialities(doctors),
    )


# ── Authenticated doctor ─────────────────────────────────────────────────────


@router.get("/patient-details/{patient_id}", response_model=ResolvedPatient)
def patient_details(
    patient_id: str,
    db: Session = Depends(get_db),
    _doctor: Principal = Depends(require_permission(PERM_CONSULT_PATIENTS)),
):
    """Unified patient view: profile, appointments and clinical records."""
    return patient_resolver.resolve(patient_id, db)


@router.get("/patients", response_model=DoctorPatientsResponse)
def doctor_patients(
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_CONSULT_PATIENTS)),
):
    """Distinct patients the doctor has appointments with, most recently seen first."""
    ordered_ids: List[str] = []
    for appointment in _own_appointments(db, doctor):
        ref = _patient_ref(appointment)
        if ref and ref not in ordered_ids:
            ordered_ids.append(ref)

    profiles = patient_resolver.find_profiles(ordered_ids, db)
    patients = []
    for patient_id in ordered_ids:
        profile = profiles.get(patient_id)
        if profile is None:
            continue
        view = normalize_profile(profile)
        patients.append(PatientListItem.model_validate({**view.model_dump(), "source": profile.source}))
    return DoctorPatientsResponse(patients=patients)


@router.get("/scheduled-patients", response_model=ScheduledPatientsResponse)
def scheduled_patients(
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_CONSULT_PATIENTS)),
):
    """Open appointments (neither cancelled nor completed), soonest first, with who is coming."""
    appointments = (
        db.query(Appointment)
        .options(joinedload(Appointment.doctor))
        .filter(
            Appointment.doc_id == doctor.id,
            Appointment.cancelled.is_(False),
            Appointment.is_completed.is_(False),
        )
        .order_by(Appointment.date.asc())
        .all()
    )
    profiles = patient_resolver.find_profiles(
        [_patient_ref(a) for a in appointments if _patient_ref(a)], db
    )
    scheduled = []
    for appointment in appointments:
        profile = profiles.get(_patient_ref(appointment))
        scheduled.append(ScheduledPatient(
            appointment=AppointmentView.model_validate(appointment),
            patient=summarize_profile(profile) if profile else None,
        ))
    return ScheduledPatientsResponse(scheduled=scheduled)


@router.get("/appointments", response_model=AppointmentListResponse)
def doctor_appointments(
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_MANAGE_OWN_APPOINTMENTS)),
):
    return AppointmentListResponse(
        appointments=[AppointmentView.model_validate(a) for a in _own_appointments(db, doctor)]
    )


def _own_appointment(db: Session, doctor: Principal, appointment_id: str) -> Appointment:
    appointment = (
        db.query(Appointment)
        .filter(Appointment.id == appointment_id, Appointment.doc_id == doctor.id)
        .first()
    )
    if not appointment:
        raise RecordNotFound("Appointment not found")
    return appointment


@router.post("/complete-appointment", response_model=MessageResponse)
def complete_appointment(
    req: AppointmentAction,
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_MANAGE_OWN_APPOINTMENTS)),
):
    appointment = _own_appointment(db, doctor, req.appointment_id)
    if appointment.cancelled:
        raise HTTPException(status_code=400, detail="Cancelled appointments cannot be completed")
    appointment.is_completed = True
    db.commit()
    logger.info("Doctor %s completed appointment %s", doctor.id, appointment.id)
    return MessageResponse(message="Appointment Completed")


@router.post("/cancel-appointment", response_model=MessageResponse)
def cancel_appointment(
    req: AppointmentAction,
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_MANAGE_OWN_APPOINTMENTS)),
):
    appointment = _own_appointment(db, doctor, req.appointment_id)
    if appointment.is_completed:
        raise HTTPException(status_code=400, detail="Completed appointments cannot be cancelled")
    appointment.cancelled = True
    db.commit()
    logger.info("Doctor %s cancelled appointment %s", doctor.id, appointment.id)
    return MessageResponse(message="Appointment Cancelled")


@router.get("/dashboard", response_model=DoctorDashboardResponse)
def doctor_dashboard(
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_VIEW_DOCTOR_DASHBOARD)),
):
    appointments = _own_appointments(db, doctor)
    earnings = sum(a.amount or 0 for a in appointments if a.is_completed or a.payment)
    patients = {_patient_ref(a) for a in appointments if _patient_ref(a)}
    return DoctorDashboardResponse(
        dash_data=DoctorDashData(
            earnings=earnings,
            appointments=len(appointments),
            patients=len(patients),
            latest_appointments=[AppointmentView.model_validate(a) for a in appointments[:LATEST_APPOINTMENTS]],
        )
    )


@router.get("/profile", response_model=DoctorProfileResponse)
def doctor_profile(
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_MANAGE_DOCTOR_PROFILE)),
):
    record = db.query(Doctor).filter(Doctor.id == doctor.id).first()
    return DoctorProfileResponse(profile_data=DoctorResponse.model_validate(record))


@router.post("/change-availability", response_model=MessageResponse)
def change_own_availability(
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_MANAGE_DOCTOR_PROFILE)),
):
    """Toggle whether the calling doctor accepts bookings."""
    record = db.query(Doctor).filter(Doctor.id == doctor.id).first()
    record.available = not record.available
    db.commit()
    logger.info("Doctor %s availability set to %s", doctor.id, record.available)
    return MessageResponse(message="Availability Changed")


@router.post("/update-profile", response_model=MessageResponse)
async def update_doctor_profile(
    fees: Optional[float] = Form(None),
    available: Optional[bool] = Form(None),
    about: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_MANAGE_DOCTOR_PROFILE)),
):
    record = db.query(Doctor).filter(Doctor.id == doctor.id).first()
    if fees is not None:
        if fees < 0:
            raise HTTPException(status_code=400, detail="Fees cannot be negative")
        record.fees = fees
    if available is not None:
        record.available = available
    if about is not None:
        record.about = about
    stored = None
    if image is not None:
        image_data = await image.read()
        try:
            stored = image_storage.store(image_data, owner_id=record.id, original_filename=image.filename or "")
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        record.image = stored["image_url"]
    commit_or_discard(db, stored)
    return MessageResponse(message="Profile Updated")
