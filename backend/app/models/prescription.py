from sqlalchemy import Column, String, Text, ForeignKey, Date, JSON
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class PrescriptionStatus:
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = [ACTIVE, COMPLETED, CANCELLED]


class Prescription(Base, TimestampMixin):
    __tablename__ = "prescriptions"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient = Column(String, nullable=False, index=True)  # users.id or patients.id
    doctor_id = Column(String, ForeignKey("doctors.id"), nullable=False, index=True)
    appointment_id = Column(String, ForeignKey("appointments.id"), nullable=True)
    diagnosis = Column(Text, nullable=False)
    # [{name, dosage, frequency, duration}]
    medications = Column(JSON, nullable=False, default=list)
    instructions = Column(Text, nullable=True)
    follow_up_date = Column(Date, nullable=True)
    status = Column(String(20), default=PrescriptionStatus.ACTIVE, nullable=False)

    doctor = relationship("Doctor")
