"""Domain errors and their translation into ``{success: false, message}`` bodies."""
from typing import Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException


class ClinicError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class RecordNotFound(ClinicError):
    status_code = 404
    message = "Record not found"


class PatientNotFound(RecordNotFound):
    """The identifier matches neither the user accounts nor the registered patients."""
    message = "Patient not found"


class ResolutionFailed(ClinicError):
    """A datastore query failed while assembling a patient view."""
    message = "Error fetching patient details"


class BookingRejected(ClinicError):
    status_code = 400
    message = "Booking rejected"


class SlotUnavailable(BookingRejected):
    status_code = 409
    message = "Slot not available"


async def clinic_error_handler(request: Request, exc: ClinicError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


async def http_error_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    missing = [str(e["loc"][-1]) for e in errors if e.get("type") == "missing"]
    if missing:
        message = "Missing required fields: " + ", ".join(missing)
    else:
        message = errors[0]["msg"] if errors else "Invalid request"
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": message, "errors": jsonable_encoder(errors)},
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(ClinicError, clinic_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
