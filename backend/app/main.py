"""
ClinicDesk - Clinic management API.
Doctors, appointments, clinical records and a unified view over the two patient identity stores.
"""
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from .core.config import settings
from .core.exceptions import register_exception_handlers
from .core.audit_middleware import AuditMiddleware
from .models.base import Base, engine
from . import models  # noqa: F401  Ensure all tables are registered
from .api import admin, auth, booking, doctor, patient_portal, patients, prescriptions
from .seed_demo import seed_demo_data
from .services.image_storage import image_storage

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create all database tables
# NOTE: In production, use Alembic migrations instead of create_all()
Base.metadata.create_all(bind=engine)

if settings.SEED_DEMO_DATA:
    # Idempotent
    seed_demo_data()

app = FastAPI(
    title="ClinicDesk API",
    description=(
        "Clinic management backend: doctors, appointments, clinical records "
        "and unified patient details across self-registered and front-desk patients."
    ),
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AuditMiddleware)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(patients.router)
app.include_router(doctor.router)
app.include_router(prescriptions.router)
app.include_router(booking.router)
app.include_router(patient_portal.router)

# Uploaded profile images, addressed by the URLs image_storage hands out
os.makedirs(image_storage.base_dir, exist_ok=True)
app.mount(image_storage.url_prefix, StaticFiles(directory=image_storage.base_dir), name="uploads")


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}
