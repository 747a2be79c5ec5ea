"""
Patient identity resolution and record aggregation.

A patient lives in one of two stores: self-registered accounts (``users``) or
front-desk registrations (``patients``). The resolver finds the canonical
profile (accounts first), joins the patient's appointments and clinical
records, and produces one normalized view in which every display field holds
either a real value or a documented placeholder. Nothing is written back.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, defer, joinedload

from ..core.exceptions import PatientNotFound, ResolutionFailed
from ..models.appointment import Appointment
from ..models.clinical_record import ClinicalRecord
from ..models.patient import Patient
from ..models.user import User

logger = logging.getLogger(__name__)

# Display placeholders
UNNAMED_PATIENT = "Unnamed Patient"
NO_EMAIL = "No email provided"
NO_PHONE = "No phone provided"
UHID_NOT_ASSIGNED = "Not assigned"
NO_UHID = "No UHID"
NOT_SPECIFIED = "Not specified"
NONE_REPORTED = "None reported"

# medicalInfo keys defaulted to NONE_REPORTED one by one
REPORTED_MEDICAL_FIELDS = ("allergies", "chronicConditions", "currentMedications")

SEARCH_RESULT_LIMIT = 50
LIKE_ESCAPE = "\\"


class PatientSource(str, Enum):
    USER = "user"
    PATIENT = "patient"


# ── Profile variants ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LegacyUserProfile:
    """Profile owned by a self-registered account."""
    source: ClassVar[PatientSource] = PatientSource.USER
    record: User

    @property
    def display_name(self) -> Optional[str]:
        return self.record.name

    @property
    def uhid(self) -> Optional[str]:
        return None

    @property
    def date_of_birth(self) -> Optional[date]:
        return self.record.date_of_birth

    @property
    def medical_info(self) -> Optional[Dict[str, Any]]:
        return None


@dataclass(frozen=True)
class RegisteredPatientProfile:
    """Profile owned by a front-desk registration."""
    source: ClassVar[PatientSource] = PatientSource.PATIENT
    record: Patient

    @property
    def display_name(self) -> Optional[str]:
        return self.record.patient_name

    @property
    def uhid(self) -> Optional[str]:
        return self.record.uhid

    @property
    def date_of_birth(self) -> Optional[date]:
        return self.record.date_of_birth or self.record.dob

    @property
    def medical_info(self) -> Optional[Dict[str, Any]]:
        return self.record.medical_info


PatientProfile = Union[LegacyUserProfile, RegisteredPatientProfile]


# ── Views ───────────────────────────────────────────────────────────────────

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class DoctorSummary(CamelModel):
    id: str = Field(alias="_id")
    name: str
    speciality: Optional[str] = None
    image: Optional[str] = None


class AppointmentView(CamelModel):
    id: str = Field(alias="_id")
    user_id: Optional[str] = None
    patient: Optional[str] = None
    doc_id: str
    doctor: Optional[DoctorSummary] = None
    date: datetime
    slot_date: Optional[str] = None
    slot_time: Optional[str] = None
    amount: Optional[float] = None
    cancelled: bool = False
    is_completed: bool = False
    payment: bool = False


class ClinicalRecordView(CamelModel):
    id: str = Field(alias="_id")
    patient: str
    consulted_doctor: Optional[DoctorSummary] = None
    encounter_type: str
    encounter_date: datetime
    reason_for_visit: str
    diagnosis: str
    treatment: str
    current_clinical_status: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime


class MedicalInfo(CamelModel):
    # Unknown keys stored alongside the standard ones are passed through
    model_config = ConfigDict(extra="allow")

    allergies: Any = NONE_REPORTED
    chronic_conditions: Any = NONE_REPORTED
    current_medications: Any = NONE_REPORTED
    emergency_contact: Any = Field(default_factory=dict)


class PatientView(CamelModel):
    id: str = Field(alias="_id")
    name: str
    patient_name: str
    email: str
    phone: str
    gender: str
    blood_group: str
    date_of_birth: Optional[date] = None
    age: Optional[int] = None
    uhid: str
    address: Dict[str, Any] = Field(default_factory=dict)
    medical_info: MedicalInfo = Field(default_factory=MedicalInfo)
    appointments: List[AppointmentView] = Field(default_factory=list)
    clinical_records: List[ClinicalRecordView] = Field(default_factory=list)


class PatientListItem(PatientView):
    source: PatientSource


class PatientSearchResult(CamelModel):
    id: str = Field(alias="_id")
    name: str
    email: str
    phone: str
    uhid: str
    gender: str
    date_of_birth: Optional[date] = None
    blood_group: str
    source: PatientSource


class ResolvedPatient(BaseModel):
    success: bool = True
    patient: PatientView
    source: PatientSource


# ── Pure helpers ────────────────────────────────────────────────────────────

def calculate_age(date_of_birth: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Calendar age in whole years, or None when the birth date is unknown."""
    if not date_of_birth:
        return None
    if isinstance(date_of_birth, datetime):
        date_of_birth = date_of_birth.date()
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def normalize_medical_info(raw: Optional[Dict[str, Any]]) -> MedicalInfo:
    """Fill each missing medicalInfo field independently, keeping populated ones.

    A stored value that is not a mapping is treated as absent.
    """
    if not isinstance(raw, Mapping):
        raw = {}
    filled = dict(raw)
    for key in REPORTED_MEDICAL_FIELDS:
        filled[key] = raw.get(key) or NONE_REPORTED
    filled["emergencyContact"] = raw.get("emergencyContact") or {}
    return MedicalInfo.model_validate(filled)


def escape_like(term: str) -> str:
    """Make ``%`` and ``_`` in a search term match literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def patient_reference_filter(patient_id: str):
    """Appointments reference the patient through ``user_id`` or ``patient``
    depending on which booking flow created them."""
    return or_(Appointment.user_id == patient_id, Appointment.patient == patient_id)


def normalize_profile(
    profile: PatientProfile,
    appointments: Iterable[Appointment] = (),
    clinical_records: Iterable[ClinicalRecord] = (),
    today: Optional[date] = None,
) -> PatientView:
    record = profile.record
    name = profile.display_name or UNNAMED_PATIENT
    dob = profile.date_of_birth
    return PatientView(
        id=record.id,
        name=name,
        patient_name=name,
        email=record.email or NO_EMAIL,
        phone=record.phone or NO_PHONE,
        gender=record.gender or NOT_SPECIFIED,
        blood_group=record.blood_group or NOT_SPECIFIED,
        date_of_birth=dob,
        age=calculate_age(dob, today),
        uhid=profile.uhid or UHID_NOT_ASSIGNED,
        address=record.address if isinstance(record.address, Mapping) else {},
        medical_info=normalize_medical_info(profile.medical_info),
        appointments=[AppointmentView.model_validate(a) for a in appointments],
        clinical_records=[ClinicalRecordView.model_validate(r) for r in clinical_records],
    )


def summarize_profile(profile: PatientProfile) -> PatientSearchResult:
    """Short identity card used by search results and schedules."""
    record = profile.record
    return PatientSearchResult(
        id=record.id,
        name=profile.display_name or UNNAMED_PATIENT,
        email=record.email or NO_EMAIL,
        phone=record.phone or NO_PHONE,
        uhid=profile.uhid or NO_UHID,
        gender=record.gender or NOT_SPECIFIED,
        date_of_birth=profile.date_of_birth,
        blood_group=record.blood_group or NOT_SPECIFIED,
        source=profile.source,
    )


# ── Resolver ────────────────────────────────────────────────────────────────

class PatientResolver:
    """Read-time join of the two patient stores with appointments and clinical records."""

    def find_profile(self, patient_id: str, db: Session) -> Optional[PatientProfile]:
        # First match wins: an id present in both stores resolves to the account
        user = (
            db.query(User)
            .options(defer(User.hashed_password))
            .filter(User.id == patient_id)
            .first()
        )
        if user:
            return LegacyUserProfile(user)
        patient = db.query(Patient).filter(Patient.id == patient_id).first()
        if patient:
            return RegisteredPatientProfile(patient)
        return None

    def find_profiles(self, patient_ids: Iterable[str], db: Session) -> Dict[str, PatientProfile]:
        """Batch form of ``find_profile``; ids found in neither store are left out."""
        ids = set(patient_ids)
        if not ids:
            return {}
        profiles: Dict[str, PatientProfile] = {}
        for user in db.query(User).options(defer(User.hashed_password)).filter(User.id.in_(ids)):
            profiles[user.id] = LegacyUserProfile(user)
        remaining = ids - profiles.keys()
        if remaining:
            for patient in db.query(Patient).filter(Patient.id.in_(remaining)):
                profiles[patient.id] = RegisteredPatientProfile(patient)
        return profiles

    def fetch_appointments(self, patient_id: str, db: Session) -> List[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.doctor))
            .filter(patient_reference_filter(patient_id))
            .order_by(Appointment.date.desc())
            .all()
        )

    def fetch_clinical_records(self, patient_id: str, db: Session) -> List[ClinicalRecord]:
        return (
            db.query(ClinicalRecord)
            .options(joinedload(ClinicalRecord.consulted_doctor))
            .filter(ClinicalRecord.patient == patient_id)
            .order_by(ClinicalRecord.created_at.desc())
            .all()
        )

    def resolve(self, patient_id: str, db: Session, today: Optional[date] = None) -> ResolvedPatient:
        """
        Build the normalized view of one patient.
        Raises PatientNotFound when neither store knows the id, and
        ResolutionFailed when any datastore query fails.
        """
        try:
            profile = self.find_profile(patient_id, db)
            if profile is None:
                raise PatientNotFound()
            appointments = self.fetch_appointments(patient_id, db)
            clinical_records = self.fetch_clinical_records(patient_id, db)
        except SQLAlchemyError as exc:
            logger.exception("Patient resolution failed for %s", patient_id)
            raise ResolutionFailed() from exc

        view = normalize_profile(profile, appointments, clinical_records, today)
        return ResolvedPatient(patient=view, source=profile.source)

    def list_patients(self, db: Session, today: Optional[date] = None) -> List[PatientListItem]:
        """Every profile from both stores, newest registration first."""
        try:
            users = db.query(User).options(defer(User.hashed_password)).all()
            patients = db.query(Patient).all()
        except SQLAlchemyError as exc:
            logger.exception("Patient listing failed")
            raise ResolutionFailed("Error fetching patients") from exc

        profiles: List[PatientProfile] = [LegacyUserProfile(u) for u in users]
        profiles.extend(RegisteredPatientProfile(p) for p in patients)
        profiles.sort(key=lambda p: p.record.created_at, reverse=True)
        return [
            PatientListItem.model_validate({**normalize_profile(p, today=today).model_dump(), "source": p.source})
            for p in profiles
        ]

    def search(self, term: str, db: Session) -> List[PatientSearchResult]:
        """Case-insensitive match on name, email, phone (and uhid) across both stores."""
        term = (term or "").strip()
        if not term:
            return []
        like = f"%{escape_like(term)}%"
        try:
            users = (
                db.query(User)
                .options(defer(User.hashed_password))
                .filter(
                    User.name.ilike(like, escape=LIKE_ESCAPE)
                    | User.email.ilike(like, escape=LIKE_ESCAPE)
                    | User.phone.ilike(like, escape=LIKE_ESCAPE)
                )
                .limit(SEARCH_RESULT_LIMIT)
                .all()
            )
            patients = (
                db.query(Patient)
                .filter(
                    Patient.patient_name.ilike(like, escape=LIKE_ESCAPE)
                    | Patient.email.ilike(like, escape=LIKE_ESCAPE)
                    | Patient.phone.ilike(like, escape=LIKE_ESCAPE)
                    | Patient.uhid.ilike(like, escape=LIKE_ESCAPE)
                )
                .limit(SEARCH_RESULT_LIMIT)
                .all()
            )
        except SQLAlchemyError as exc:
            logger.exception("Patient search failed for term %r", term)
            raise ResolutionFailed("Search failed") from exc

        profiles: List[PatientProfile] = [LegacyUserProfile(u) for u in users]
        profiles.extend(RegisteredPatientProfile(p) for p in patients)
        return [summarize_profile(p) for p in profiles[:SEARCH_RESULT_LIMIT]]


patient_resolver = PatientResolver()
