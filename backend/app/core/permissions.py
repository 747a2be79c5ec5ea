"""
Role-based permission matrix for ClinicDesk.
Defines what each role is allowed to do in the system.
"""
from fastapi import Depends, HTTPException

from ..models.user import UserRole
from .security import Principal, get_current_principal

# Permission constants
PERM_VIEW_ADMIN_DASHBOARD = "view_admin_dashboard"
PERM_VIEW_PATIENT_DETAILS = "view_patient_details"
PERM_LIST_PATIENTS = "list_patients"
PERM_ADD_CLINICAL_RECORDS = "add_clinical_records"
PERM_MANAGE_DOCTORS = "manage_doctors"
PERM_MANAGE_ALL_APPOINTMENTS = "manage_all_appointments"
PERM_VIEW_AUDIT_LOGS = "view_audit_logs"

PERM_CONSULT_PATIENTS = "consult_patients"
PERM_MANAGE_OWN_APPOINTMENTS = "manage_own_appointments"
PERM_WRITE_PRESCRIPTIONS = "write_prescriptions"
PERM_VIEW_DOCTOR_DASHBOARD = "view_doctor_dashboard"
PERM_MANAGE_DOCTOR_PROFILE = "manage_doctor_profile"

PERM_VIEW_OWN_RECORDS = "view_own_records"
PERM_MANAGE_PATIENT_PROFILE = "manage_patient_profile"

# Role permission matrix
ROLE_PERMISSIONS: dict = {
    UserRole.ADMIN: {
        PERM_VIEW_ADMIN_DASHBOARD,
        PERM_VIEW_PATIENT_DETAILS,
        PERM_LIST_PATIENTS,
        PERM_ADD_CLINICAL_RECORDS,
        PERM_MANAGE_DOCTORS,
        PERM_MANAGE_ALL_APPOINTMENTS,
        PERM_VIEW_AUDIT_LOGS,
    },
    UserRole.DOCTOR: {
        PERM_CONSULT_PATIENTS,
        PERM_MANAGE_OWN_APPOINTMENTS,
        PERM_WRITE_PRESCRIPTIONS,
        PERM_VIEW_DOCTOR_DASHBOARD,
        PERM_MANAGE_DOCTOR_PROFILE,
    },
    UserRole.PATIENT: {
        PERM_VIEW_OWN_RECORDS,
        PERM_MANAGE_PATIENT_PROFILE,
    },
}


def has_permission(role: str, permission: str) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())


def require_permission(permission: str):
    """Dependency factory rejecting callers whose role lacks ``permission``."""

    def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.role, permission):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return principal

    return checker
