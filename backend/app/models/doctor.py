from sqlalchemy import Column, String, Text, Boolean, Integer, Float, JSON
from .base import Base, TimestampMixin, generate_uuid


class Doctor(Base, TimestampMixin):
    __tablename__ = "doctors"

    id = Column(String, primary_key=True, default=generate_uuid)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    image = Column(String(500), nullable=True)
    speciality = Column(String(100), nullable=True, index=True)
    degree = Column(String(100), nullable=True)
    experience = Column(Integer, nullable=True)  # years
    about = Column(Text, nullable=True)
    available = Column(Boolean, default=True, nullable=False)
    fees = Column(Float, nullable=True)
    address = Column(JSON, nullable=True)
