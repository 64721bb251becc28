"""Shared Enums for the application.

Defines enum types used across models and schemas, and the mapping
between the closed role enumeration and the persisted access flags.
"""
from enum import Enum


class UserRole(str, Enum):
    """User role enum for authorization.

    Attributes:
        ADMINISTRATOR: Superuser, full access to the admin dashboard
        DOCTOR: Staff user working with patients and scans
        STAFF: Non-clinical staff; same flags as a doctor
        PATIENT: Regular account, patient dashboard only
    """
    ADMINISTRATOR = "Administrator"
    DOCTOR = "Doctor"
    STAFF = "Staff"
    PATIENT = "Patient"

    @property
    def flags(self) -> tuple[bool, bool]:
        """``(is_superuser, is_staff)`` persisted for this role."""
        if self is UserRole.ADMINISTRATOR:
            return True, True
        if self in (UserRole.DOCTOR, UserRole.STAFF):
            return False, True
        return False, False

    @classmethod
    def from_flags(cls, is_superuser: bool, is_staff: bool) -> "UserRole":
        """Resolve a role from stored flags. Superuser wins, then staff."""
        if is_superuser:
            return cls.ADMINISTRATOR
        if is_staff:
            return cls.DOCTOR
        return cls.PATIENT


class Capability(str, Enum):
    ADMIN_ACCESS = "admin:access"
    ADMIN_MANAGE_USERS = "admin:manage_users"
    CLINICAL_READ = "clinical:read"
    PATIENT_SELF = "patient:self"


def resolve_capabilities(is_superuser: bool, is_staff: bool) -> list[str]:
    """Capability set embedded in the token at issuance."""
    caps = [Capability.PATIENT_SELF]
    if is_superuser or is_staff:
        caps.extend([Capability.ADMIN_ACCESS, Capability.CLINICAL_READ])
    if is_superuser:
        caps.append(Capability.ADMIN_MANAGE_USERS)
    return sorted(c.value for c in caps)


class UserStatus(str, Enum):
    """Status filter exposed on the admin user list."""
    ACTIVE = "Active"
    SUSPENDED = "Suspended"


class AuthRecordType(str, Enum):
    VERIFY = "verify"


class AppointmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AppointmentUrgency(str, Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENCY = "emergency"


class AppointmentType(str, Enum):
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow-up"
    SCAN = "scan"
    RESULTS = "results"
