"""Authentication endpoints: admin, doctor and patient login, current principal."""
import logging
import secrets

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.security import Principal, create_access_token, get_current_principal, verify_password
from ..models.base import get_db
from ..models.doctor import Doctor
from ..models.user import User, UserRole

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


# ── Request / Response schemas ──────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"


class PrincipalResponse(BaseModel):
    success: bool = True
    id: str
    role: str
    email: str
    name: str


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


# ── Endpoints ────────────────────────────────────────────────────────────────

@router.post("/admin/login", response_model=TokenResponse)
def admin_login(req: LoginRequest):
    """Authenticate against the environment-configured admin account."""
    email_ok = secrets.compare_digest(req.email.encode("utf-8"), settings.ADMIN_EMAIL.encode("utf-8"))
    password_ok = secrets.compare_digest(req.password.encode("utf-8"), settings.ADMIN_PASSWORD.encode("utf-8"))
    if not (email_ok and password_ok):
        logger.warning("Failed admin login for %s", req.email)
        raise _invalid_credentials()
    token = create_access_token({"sub": settings.ADMIN_EMAIL, "role": UserRole.ADMIN})
    return TokenResponse(token=token)


@router.post("/doctor/login", response_model=TokenResponse)
def doctor_login(req: LoginRequest, db: Session = Depends(get_db)):
    doctor = db.query(Doctor).filter(Doctor.email == req.email).first()
    if not doctor or not verify_password(req.password, doctor.hashed_password):
        logger.warning("Failed doctor login for %s", req.email)
        raise _invalid_credentials()
    token = create_access_token({"sub": doctor.id, "role": UserRole.DOCTOR})
    return TokenResponse(token=token)


@router.post("/patient/login", response_model=TokenResponse)
def patient_login(req: LoginRequest, db: Session = Depends(get_db)):
    """Self-registered accounts only; front-desk registrations have no password."""
    user = db.query(User).filter(User.email == req.email).first()
    if not user or not verify_password(req.password, user.hashed_password):
        logger.warning("Failed patient login for %s", req.email)
        raise _invalid_credentials()
    token = create_access_token({"sub": user.id, "role": UserRole.PATIENT})
    return TokenResponse(token=token)


@router.get("/auth/me", response_model=PrincipalResponse)
def get_me(principal: Principal = Depends(get_current_principal)):
    """Return the caller behind the presented token (used by the dashboards to verify a stored token)."""
    return PrincipalResponse(
        id=principal.id,
        role=principal.role,
        email=principal.email or "",
        name=principal.name or "",
    )
