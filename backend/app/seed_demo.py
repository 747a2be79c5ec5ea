"""
Demo data seeder for ClinicDesk.

Creates a demo doctor with known credentials, one self-registered patient
account and one front-desk registered patient, plus appointments booked
through both flows, a clinical record and a prescription, so the patient details screens
have something to show immediately after a fresh start.

Credentials (printed to stdout on first run):
  Doctor: doctor@clinicdesk.demo / Demo1234!
  Admin : taken from ADMIN_EMAIL / ADMIN_PASSWORD

This seeder is idempotent. It is safe to call on every startup.
"""
from datetime import date, datetime, timedelta

from .models.base import SessionLocal, Base, engine, generate_uuid
from .models.user import User
from .models.patient import Patient
from .models.doctor import Doctor
from .models.appointment import Appointment
from .models.clinical_record import ClinicalRecord, EncounterType
from .models.prescription import Prescription
from .core.security import get_password_hash

DEMO_DOCTOR_EMAIL = "doctor@clinicdesk.demo"
DEMO_DOCTOR_PASSWORD = "Demo1234!"

DEMO_USER_EMAIL = "asha.verma@clinicdesk.demo"
DEMO_USER_PASSWORD = "Patient1234!"

DEMO_PATIENT_UHID = "UHID-DEMO-0001"


def seed_demo_data() -> None:
    """Create demo doctor, patients, appointments, a record and a prescription if they do not already exist."""
    # Ensure tables exist (no-op when already created by main.py)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        doctor = _seed_doctor(db)
        user = _seed_user_account(db)
        patient = _seed_registered_patient(db)
        _seed_appointments(db, doctor, user, patient)
        _seed_clinical_record(db, doctor, patient)
        _seed_prescription(db, doctor, patient)
    finally:
        db.close()


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_doctor(db) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.email == DEMO_DOCTOR_EMAIL).first()
    if not doctor:
        doctor = Doctor(
            id=generate_uuid(),
            name="Dr. Richard James",
            email=DEMO_DOCTOR_EMAIL,
            hashed_password=get_password_hash(DEMO_DOCTOR_PASSWORD),
            speciality="General physician",
            degree="MBBS",
            experience=4,
            about="Pre-seeded demo doctor.",
            fees=50.0,
            address={"line1": "17th Cross, Richmond", "line2": "Circle, Ring Road"},
        )
        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        print(f"[seed] Created demo doctor : {DEMO_DOCTOR_EMAIL} / {DEMO_DOCTOR_PASSWORD}")
    return doctor


def _seed_user_account(db) -> User:
    user = db.query(User).filter(User.email == DEMO_USER_EMAIL).first()
    if not user:
        user = User(
            id=generate_uuid(),
            name="Asha Verma",
            email=DEMO_USER_EMAIL,
            hashed_password=get_password_hash(DEMO_USER_PASSWORD),
            phone="+91 98450 00001",
            date_of_birth=date(1990, 3, 12),
            gender="female",
            blood_group="B+",
            address={"line1": "22 Lake View Road", "line2": "Bengaluru"},
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        print(f"[seed] Created demo account: {user.name} ({user.email})")
    return user


def _seed_registered_patient(db) -> Patient:
    patient = db.query(Patient).filter(Patient.uhid == DEMO_PATIENT_UHID).first()
    if not patient:
        patient = Patient(
            id=generate_uuid(),
            uhid=DEMO_PATIENT_UHID,
            patient_name="John Demo",
            phone="+91 98450 00002",
            # Registered before date_of_birth existed
            dob=date(1960, 6, 15),
            gender="male",
            blood_group="O+",
            medical_info={"chronicConditions": "Type 2 diabetes"},
        )
        db.add(patient)
        db.commit()
        db.refresh(patient)
        print(f"[seed] Created demo patient: {patient.patient_name} (UHID: {patient.uhid})")
    return patient


def _seed_appointments(db, doctor: Doctor, user: User, patient: Patient) -> None:
    if db.query(Appointment).filter(Appointment.doc_id == doctor.id).first():
        return
    now = datetime.utcnow().replace(microsecond=0)
    db.add_all([
        # Self-service booking references the account through user_id
        Appointment(
            id=generate_uuid(),
            user_id=user.id,
            doc_id=doctor.id,
            date=now - timedelta(days=3),
            slot_date=(now - timedelta(days=3)).strftime("%d_%m_%Y"),
            slot_time="10:30",
            amount=doctor.fees,
            is_completed=True,
            payment=True,
        ),
        # Front-desk booking references the registration through patient
        Appointment(
            id=generate_uuid(),
            patient=patient.id,
            doc_id=doctor.id,
            date=now + timedelta(days=2),
            slot_date=(now + timedelta(days=2)).strftime("%d_%m_%Y"),
            slot_time="09:00",
            amount=doctor.fees,
        ),
    ])
    db.commit()
    print("[seed] Created demo appointments")


def _seed_clinical_record(db, doctor: Doctor, patient: Patient) -> None:
    if db.query(ClinicalRecord).filter(ClinicalRecord.patient == patient.id).first():
        return
    db.add(ClinicalRecord(
        id=generate_uuid(),
        patient=patient.id,
        consulted_doctor_id=doctor.id,
        encounter_type=EncounterType.OUTPATIENT,
        encounter_date=datetime.utcnow().replace(microsecond=0) - timedelta(days=30),
        reason_for_visit="Routine diabetes review",
        diagnosis="Type 2 diabetes mellitus, controlled",
        treatment="Continue metformin 500 mg twice daily",
        current_clinical_status="stable",
    ))
    db.commit()
    print("[seed] Created demo clinical record")


def _seed_prescription(db, doctor: Doctor, patient: Patient) -> None:
    if db.query(Prescription).filter(Prescription.patient == patient.id).first():
        return
    db.add(Prescription(
        id=generate_uuid(),
        patient=patient.id,
        doctor_id=doctor.id,
        diagnosis="Type 2 diabetes mellitus, controlled",
        medications=[
            {"name": "Metformin", "dosage": "500 mg", "frequency": "twice daily", "duration": "90 days"},
        ],
        instructions="Take with meals. Recheck HbA1c in three months.",
        follow_up_date=date.today() + timedelta(days=90),
    ))
    db.commit()
    print("[seed] Created demo prescription")
