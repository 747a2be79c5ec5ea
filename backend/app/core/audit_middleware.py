"""
Audit logging middleware.
Auto-logs all requests to patient-data endpoints (patient details, clinical records,
prescriptions and the patient portal).
"""
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from ..models.audit import AuditLog
from ..models import base as db_base
from ..models.base import generate_uuid
from ..core.security import decode_access_token, extract_token

logger = logging.getLogger(__name__)

# Endpoints that expose patient data - requests to these paths are logged
PATIENT_DATA_PATH_PREFIXES = (
    "/api/admin/patient",
    "/api/admin/search-patients",
    "/api/admin/clinical-records",
    "/api/doctor/patient",
    "/api/doctor/prescription",
    "/api/patient/dashboard",
    "/api/patient/appointments",
    "/api/patient/prescriptions",
    "/api/patient/bills",
    "/api/patient/profile",
)


def describe_request(method: str, path: str):
    """Derive (action, resource_type, resource_id) from a request line.

    ``/api/doctor/patient-details/<id>`` -> ("view", "patient-details", "<id>").
    """
    parts = [p for p in path.split("/") if p]
    resource_type = parts[2] if len(parts) >= 3 else "unknown"
    resource_id = parts[3] if len(parts) >= 4 else "collection"

    action_map = {
        "GET": "view",
        "POST": "create",
        "PUT": "update",
        "PATCH": "update",
        "DELETE": "delete",
    }
    action = action_map.get(method, method.lower())
    # Search is a read even though it is POSTed
    if resource_type == "search-patients":
        action = "search"
    return action, resource_type, resource_id


class AuditMiddleware(BaseHTTPMiddleware):
    """Middleware that auto-logs access to patient-data endpoints."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        path = request.url.path
        if not any(path.startswith(prefix) for prefix in PATIENT_DATA_PATH_PREFIXES):
            return response

        if request.method not in ("GET", "POST", "PUT", "PATCH", "DELETE"):
            return response

        user_id = "anonymous"
        role = None
        token = extract_token(request)
        if token:
            payload = decode_access_token(token)
            if payload:
                user_id = payload.get("sub", "anonymous")
                role = payload.get("role")

        action, resource_type, resource_id = describe_request(request.method, path)
        ip_address = request.client.host if request.client else None

        db = db_base.SessionLocal()
        try:
            db.add(AuditLog(
                id=generate_uuid(),
                user_id=user_id,
                role=role,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                ip_address=ip_address,
                request_method=request.method,
                request_path=path,
                status_code=response.status_code,
            ))
            db.commit()
        except Exception as exc:
            logger.warning(
                "Audit log write failed for %s %s (user=%s): %s",
                request.method, path, user_id, exc,
            )
        finally:
            db.close()

        return response
