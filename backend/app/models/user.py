from sqlalchemy import Column, String, Date, JSON
from .base import Base, TimestampMixin, generate_uuid


class UserRole:
    ADMIN = "admin"
    DOCTOR = "doctor"
    PATIENT = "patient"


class User(Base, TimestampMixin):
    """Self-registered patient account (legacy identity store, no UHID)."""
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    blood_group = Column(String(5), nullable=True)
    address = Column(JSON, nullable=True)  # {line1, line2, ...}
    image = Column(String(500), nullable=True)
