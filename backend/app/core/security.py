"""Password hashing, JWT issuance and the bearer-token auth dependencies."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from .config import settings
from ..models.base import get_db
from ..models.doctor import Doctor
from ..models.user import User, UserRole

logger = logging.getLogger(__name__)

# Headers sent by the admin, doctor and patient dashboards before they moved to Authorization
LEGACY_TOKEN_HEADERS = ("atoken", "dtoken", "ptoken")


@dataclass
class Principal:
    """The authenticated caller of a request."""
    id: str
    role: str
    email: Optional[str] = None
    name: Optional[str] = None


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token payload, or None if the token is invalid or expired."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None


def extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    for header in LEGACY_TOKEN_HEADERS:
        token = request.headers.get(header)
        if token:
            return token
    return None


def _unauthorized(detail: str = "Not authorized, login again") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(request: Request, db: Session = Depends(get_db)) -> Principal:
    token = extract_token(request)
    if not token:
        raise _unauthorized()
    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    subject = payload.get("sub")
    role = payload.get("role")
    if role == UserRole.ADMIN:
        if subject != settings.ADMIN_EMAIL:
            raise _unauthorized("Invalid or expired token")
        return Principal(id=subject, role=UserRole.ADMIN, email=subject, name="Administrator")
    if role == UserRole.DOCTOR:
        doctor = db.query(Doctor).filter(Doctor.id == subject).first()
        if not doctor:
            raise _unauthorized("Invalid or expired token")
        return Principal(id=doctor.id, role=UserRole.DOCTOR, email=doctor.email, name=doctor.name)
    if role == UserRole.PATIENT:
        user = db.query(User).filter(User.id == subject).first()
        if not user:
            raise _unauthorized("Invalid or expired token")
        return Principal(id=user.id, role=UserRole.PATIENT, email=user.email, name=user.name)

    logger.warning("Rejected token with unknown role %r", role)
    raise _unauthorized("Invalid or expired token")
