"""Public booking endpoint used by the doctor finder page."""
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..models.base import get_db
from ..services.booking import booking_service
from ..services.patient_resolver import AppointmentView, CamelModel

router = APIRouter(prefix="/api/appointment-booking", tags=["booking"])


class BookingUserData(CamelModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None


class BookingDocData(CamelModel):
    name: Optional[str] = None
    speciality: Optional[str] = None


class BookingRequest(CamelModel):
    # Payment and status flags sent by the site are ignored
    doc_id: Optional[str] = None
    user_data: BookingUserData
    doc_data: Optional[BookingDocData] = None
    slot_date: str
    slot_time: str


class BookingResponse(BaseModel):
    success: bool = True
    message: str = "Appointment Booked"
    appointment: AppointmentView


@router.post("/book", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(req: BookingRequest, db: Session = Depends(get_db)):
    appointment = booking_service.book(
        db,
        doctor_id=req.doc_id,
        doctor_name=req.doc_data.name if req.doc_data else None,
        patient_name=req.user_data.name,
        email=req.user_data.email,
        phone=req.user_data.phone,
        slot_date=req.slot_date,
        slot_time=req.slot_time,
    )
    return BookingResponse(appointment=AppointmentView.model_validate(appointment))
