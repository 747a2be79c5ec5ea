"""
Public appointment booking.

Bookings from the public site carry only a name, email and phone. The caller
is matched to an existing account (``Appointment.user_id``) or front-desk
registration (``Appointment.patient``); unknown callers get a new front-desk
registration so the booking is visible in the unified patient view.
"""
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, defer

from ..core.exceptions import BookingRejected, RecordNotFound, SlotUnavailable
from ..models.appointment import Appointment
from ..models.base import generate_uuid
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.user import User

logger = logging.getLogger(__name__)

# The site's date picker sends ISO dates; the dashboards store d_m_Y
SLOT_DATE_FORMATS = ("%Y-%m-%d", "%d_%m_%Y")
STORED_SLOT_DATE_FORMAT = "%d_%m_%Y"
SLOT_TIME_FORMAT = "%H:%M"


def parse_slot(slot_date: str, slot_time: str) -> datetime:
    """Combine a slot date and ``HH:MM`` time into one datetime."""
    day = None
    for fmt in SLOT_DATE_FORMATS:
        try:
            day = datetime.strptime(slot_date.strip(), fmt).date()
            break
        except ValueError:
            continue
    if day is None:
        raise BookingRejected(f"Invalid slot date {slot_date!r}")
    try:
        time_of_day = datetime.strptime(slot_time.strip(), SLOT_TIME_FORMAT).time()
    except ValueError:
        raise BookingRejected(f"Invalid slot time {slot_time!r}")
    return datetime.combine(day, time_of_day)


class BookingService:
    def find_doctor(self, db: Session, doctor_id: Optional[str], doctor_name: Optional[str]) -> Doctor:
        doctor = None
        if doctor_id:
            doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
        elif doctor_name:
            doctor = db.query(Doctor).filter(Doctor.name == doctor_name).first()
        if not doctor:
            raise RecordNotFound("Doctor not found")
        return doctor

    def match_patient(
        self, db: Session, name: str, email: Optional[str], phone: Optional[str]
    ) -> Tuple[Optional[str], Optional[str]]:
        """Return ``(user_id, patient)`` for the appointment; exactly one is set."""
        if email:
            user = (
                db.query(User)
                .options(defer(User.hashed_password))
                .filter(func.lower(User.email) == email.lower())
                .first()
            )
            if user:
                return user.id, None
            patient = db.query(Patient).filter(func.lower(Patient.email) == email.lower()).first()
            if patient:
                return None, patient.id
        if phone:
            patient = db.query(Patient).filter(Patient.phone == phone).first()
            if patient:
                return None, patient.id

        patient = Patient(id=generate_uuid(), patient_name=name, email=email, phone=phone)
        db.add(patient)
        db.flush()
        logger.info("Registered %s (%s) from a public booking", patient.id, email or phone)
        return None, patient.id

    def book(
        self,
        db: Session,
        *,
        doctor_id: Optional[str],
        doctor_name: Optional[str],
        patient_name: str,
        email: Optional[str],
        phone: Optional[str],
        slot_date: str,
        slot_time: str,
        now: Optional[datetime] = None,
    ) -> Appointment:
        """Create an appointment, or raise BookingRejected / SlotUnavailable / RecordNotFound."""
        doctor = self.find_doctor(db, doctor_id, doctor_name)
        if not doctor.available:
            raise BookingRejected("Doctor not available")

        when = parse_slot(slot_date, slot_time)
        if when < (now or datetime.utcnow()):
            raise BookingRejected("Cannot book a slot in the past")
        taken = (
            db.query(Appointment)
            .filter(
                Appointment.doc_id == doctor.id,
                Appointment.date == when,
                Appointment.cancelled.is_(False),
            )
            .first()
        )
        if taken:
            raise SlotUnavailable()

        user_id, patient_id = self.match_patient(db, patient_name, email, phone)
        appointment = Appointment(
            id=generate_uuid(),
            user_id=user_id,
            patient=patient_id,
            doc_id=doctor.id,
            date=when,
            slot_date=when.strftime(STORED_SLOT_DATE_FORMAT),
            slot_time=when.strftime(SLOT_TIME_FORMAT),
            # Fee comes from the doctor record, never from the client
            amount=doctor.fees or 0.0,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        logger.info("Booked %s with doctor %s at %s", user_id or patient_id, doctor.id, when)
        return appointment


booking_service = BookingService()
