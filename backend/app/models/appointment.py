from sqlalchemy import Column, String, Float, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class Appointment(Base, TimestampMixin):
    __tablename__ = "appointments"

    id = Column(String, primary_key=True, default=generate_uuid)
    # Patient reference: self-service bookings set user_id, front-desk bookings set patient.
    # Either may be the only one populated.
    user_id = Column(String, nullable=True, index=True)
    patient = Column(String, nullable=True, index=True)
    doc_id = Column(String, ForeignKey("doctors.id"), nullable=False, index=True)
    date = Column(DateTime, nullable=False)
    slot_date = Column(String(20), nullable=True)
    slot_time = Column(String(20), nullable=True)
    amount = Column(Float, default=0.0)
    cancelled = Column(Boolean, default=False, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    payment = Column(Boolean, default=False, nullable=False)

    doctor = relationship("Doctor")
