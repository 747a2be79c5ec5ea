from sqlalchemy import Column, String, Date, JSON
from .base import Base, TimestampMixin, generate_uuid


class Patient(Base, TimestampMixin):
    """Front-desk registered patient."""
    __tablename__ = "patients"

    id = Column(String, primary_key=True, default=generate_uuid)
    uhid = Column(String(50), unique=True, nullable=True, index=True)  # Unique Hospital ID
    patient_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(30), nullable=True)
    # Older registrations wrote `dob`; newer ones write `date_of_birth`
    date_of_birth = Column(Date, nullable=True)
    dob = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    blood_group = Column(String(5), nullable=True)
    address = Column(JSON, nullable=True)
    # {allergies, chronicConditions, currentMedications, emergencyContact}
    medical_info = Column(JSON, nullable=True)
