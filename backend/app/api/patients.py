"""Admin patient endpoints: listing, search, unified details and clinical records."""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..core.exceptions import PatientNotFound, RecordNotFound
from ..core.permissions import (
    PERM_ADD_CLINICAL_RECORDS,
    PERM_LIST_PATIENTS,
    PERM_VIEW_PATIENT_DETAILS,
    require_permission,
)
from ..core.security import Principal
from ..models.base import get_db, generate_uuid
from ..models.clinical_record import ClinicalRecord, EncounterType
from ..models.doctor import Doctor
from ..services.patient_resolver import (
    CamelModel,
    ClinicalRecordView,
    PatientListItem,
    PatientSearchResult,
    ResolvedPatient,
    patient_resolver,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["patients"])


class PatientListResponse(BaseModel):
    success: bool = True
    patients: List[PatientListItem]


class SearchRequest(BaseModel):
    term: str = ""


class SearchResponse(BaseModel):
    success: bool = True
    patients: List[PatientSearchResult]


class ClinicalRecordCreate(CamelModel):
    consulted_doctor: str
    encounter_type: str
    encounter_date: datetime
    reason_for_visit: str = Field(min_length=1)
    diagnosis: str = Field(min_length=1)
    treatment: str = Field(min_length=1)
    current_clinical_status: Optional[str] = None
    notes: Optional[str] = None


class ClinicalRecordListResponse(BaseModel):
    success: bool = True
    clinical_records: List[ClinicalRecordView] = Field(serialization_alias="clinicalRecords")


class ClinicalRecordCreatedResponse(BaseModel):
    success: bool = True
    message: str = "Clinical record added"
    clinical_record: ClinicalRecordView = Field(serialization_alias="clinicalRecord")


@router.get("/patients", response_model=PatientListResponse)
def list_patients(
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_LIST_PATIENTS)),
):
    """Every patient from both identity stores, with age and display defaults."""
    return PatientListResponse(patients=patient_resolver.list_patients(db))


@router.post("/search-patients", response_model=SearchResponse)
def search_patients(
    req: SearchRequest,
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_LIST_PATIENTS)),
):
    """Search patients by name, email, phone or UHID."""
    return SearchResponse(patients=patient_resolver.search(req.term, db))


@router.get("/patient-details/{patient_id}", response_model=ResolvedPatient)
def patient_details(
    patient_id: str,
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_VIEW_PATIENT_DETAILS)),
):
    return patient_resolver.resolve(patient_id, db)


@router.get("/clinical-records/{patient_id}", response_model=ClinicalRecordListResponse)
def get_clinical_records(
    patient_id: str,
    db: Session = Depends(get_db),
    _admin: Principal = Depends(require_permission(PERM_VIEW_PATIENT_DETAILS)),
):
    """Clinical records of one patient, newest first."""
    if patient_resolver.find_profile(patient_id, db) is None:
        raise PatientNotFound()
    records = patient_resolver.fetch_clinical_records(patient_id, db)
    return ClinicalRecordListResponse(
        clinical_records=[ClinicalRecordView.model_validate(r) for r in records]
    )


@router.post(
    "/clinical-records/{patient_id}",
    response_model=ClinicalRecordCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_clinical_record(
    patient_id: str,
    record_in: ClinicalRecordCreate,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_permission(PERM_ADD_CLINICAL_RECORDS)),
):
    if record_in.encounter_type not in EncounterType.ALL:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid encounter type. Choose from: {EncounterType.ALL}",
        )
    if patient_resolver.find_profile(patient_id, db) is None:
        raise PatientNotFound()
    if not db.query(Doctor).filter(Doctor.id == record_in.consulted_doctor).first():
        raise RecordNotFound("Doctor not found")

    record = ClinicalRecord(
        id=generate_uuid(),
        patient=patient_id,
        consulted_doctor_id=record_in.consulted_doctor,
        encounter_type=record_in.encounter_type,
        encounter_date=record_in.encounter_date,
        reason_for_visit=record_in.reason_for_visit,
        diagnosis=record_in.diagnosis,
        treatment=record_in.treatment,
        current_clinical_status=record_in.current_clinical_status,
        notes=record_in.notes,
        created_by=admin.id,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    logger.info("Clinical record %s added for patient %s by %s", record.id, patient_id, admin.id)
    return ClinicalRecordCreatedResponse(clinical_record=ClinicalRecordView.model_validate(record))
