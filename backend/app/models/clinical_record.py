from sqlalchemy import Column, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class EncounterType:
    OUTPATIENT = "outpatient"
    INPATIENT = "inpatient"
    EMERGENCY = "emergency"
    FOLLOW_UP = "follow_up"
    TELECONSULTATION = "teleconsultation"

    ALL = [OUTPATIENT, INPATIENT, EMERGENCY, FOLLOW_UP, TELECONSULTATION]


class ClinicalRecord(Base, TimestampMixin):
    __tablename__ = "clinical_records"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient = Column(String, nullable=False, index=True)  # users.id or patients.id
    consulted_doctor_id = Column(String, ForeignKey("doctors.id"), nullable=True, index=True)
    encounter_type = Column(String(30), nullable=False)
    encounter_date = Column(DateTime, nullable=False)
    reason_for_visit = Column(Text, nullable=False)
    diagnosis = Column(Text, nullable=False)
    treatment = Column(Text, nullable=False)
    current_clinical_status = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)

    consulted_doctor = relationship("Doctor")
