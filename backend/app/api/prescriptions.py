"""Doctor prescription endpoints: write, list and revise prescriptions."""
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import PatientNotFound, RecordNotFound
from ..core.permissions import PERM_WRITE_PRESCRIPTIONS, require_permission
from ..core.security import Principal
from ..models.appointment import Appointment
from ..models.base import get_db, generate_uuid
from ..models.prescription import Prescription, PrescriptionStatus
from ..services.patient_resolver import CamelModel, DoctorSummary, patient_resolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/doctor", tags=["prescriptions"])


class Medication(CamelModel):
    name: str = Field(min_length=1)
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    duration: Optional[str] = None


class PrescriptionView(CamelModel):
    id: str = Field(alias="_id")
    patient: str
    doctor: Optional[DoctorSummary] = None
    appointment_id: Optional[str] = None
    diagnosis: str
    medications: List[Medication] = Field(default_factory=list)
    instructions: Optional[str] = None
    follow_up_date: Optional[date] = None
    status: str
    created_at: datetime


class PrescriptionCreate(CamelModel):
    patient_id: str
    appointment_id: Optional[str] = None
    diagnosis: str = Field(min_length=1)
    medications: List[Medication] = Field(min_length=1)
    instructions: Optional[str] = None
    follow_up_date: Optional[date] = None


class PrescriptionUpdate(CamelModel):
    diagnosis: Optional[str] = Field(None, min_length=1)
    medications: Optional[List[Medication]] = Field(None, min_length=1)
    instructions: Optional[str] = None
    follow_up_date: Optional[date] = None
    status: Optional[str] = None


class PrescriptionResponse(BaseModel):
    success: bool = True
    prescription: PrescriptionView


class PrescriptionListResponse(BaseModel):
    success: bool = True
    prescriptions: List[PrescriptionView]


def prescriptions_for_patient(patient_id: str, db: Session) -> List[Prescription]:
    """Every prescription written for one patient, newest first."""
    return (
        db.query(Prescription)
        .options(joinedload(Prescription.doctor))
        .filter(Prescription.patient == patient_id)
        .order_by(Prescription.created_at.desc())
        .all()
    )


@router.post("/prescription", response_model=PrescriptionResponse, status_code=status.HTTP_201_CREATED)
def create_prescription(
    req: PrescriptionCreate,
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_WRITE_PRESCRIPTIONS)),
):
    if patient_resolver.find_profile(req.patient_id, db) is None:
        raise PatientNotFound()
    if req.appointment_id:
        appointment = (
            db.query(Appointment)
            .filter(Appointment.id == req.appointment_id, Appointment.doc_id == doctor.id)
            .first()
        )
        if not appointment:
            raise RecordNotFound("Appointment not found")

    prescription = Prescription(
        id=generate_uuid(),
        patient=req.patient_id,
        doctor_id=doctor.id,
        appointment_id=req.appointment_id,
        diagnosis=req.diagnosis,
        medications=[m.model_dump() for m in req.medications],
        instructions=req.instructions,
        follow_up_date=req.follow_up_date,
        status=PrescriptionStatus.ACTIVE,
    )
    db.add(prescription)
    db.commit()
    db.refresh(prescription)
    logger.info("Doctor %s wrote prescription %s for %s", doctor.id, prescription.id, req.patient_id)
    return PrescriptionResponse(prescription=PrescriptionView.model_validate(prescription))


@router.get("/prescriptions", response_model=PrescriptionListResponse)
def doctor_prescriptions(
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_WRITE_PRESCRIPTIONS)),
):
    prescriptions = (
        db.query(Prescription)
        .options(joinedload(Prescription.doctor))
        .filter(Prescription.doctor_id == doctor.id)
        .order_by(Prescription.created_at.desc())
        .all()
    )
    return PrescriptionListResponse(prescriptions=[PrescriptionView.model_validate(p) for p in prescriptions])


@router.get("/patient-prescriptions/{patient_id}", response_model=PrescriptionListResponse)
def patient_prescriptions(
    patient_id: str,
    db: Session = Depends(get_db),
    _doctor: Principal = Depends(require_permission(PERM_WRITE_PRESCRIPTIONS)),
):
    """A patient's prescription history from every doctor."""
    if patient_resolver.find_profile(patient_id, db) is None:
        raise PatientNotFound()
    return PrescriptionListResponse(
        prescriptions=[PrescriptionView.model_validate(p) for p in prescriptions_for_patient(patient_id, db)]
    )


@router.put("/prescription/{prescription_id}", response_model=PrescriptionResponse)
def update_prescription(
    prescription_id: str,
    req: PrescriptionUpdate,
    db: Session = Depends(get_db),
    doctor: Principal = Depends(require_permission(PERM_WRITE_PRESCRIPTIONS)),
):
    """Revise a prescription; only the prescribing doctor may."""
    prescription = (
        db.query(Prescription)
        .filter(Prescription.id == prescription_id, Prescription.doctor_id == doctor.id)
        .first()
    )
    if not prescription:
        raise RecordNotFound("Prescription not found")

    changes = req.model_dump(exclude_unset=True)
    if "status" in changes and changes["status"] not in PrescriptionStatus.ALL:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status. Choose from: {PrescriptionStatus.ALL}",
        )
    for field, value in changes.items():
        if value is None and field in ("diagnosis", "medications", "status"):
            continue
        setattr(prescription, field, value)
    db.commit()
    db.refresh(prescription)
    return PrescriptionResponse(prescription=PrescriptionView.model_validate(prescription))
