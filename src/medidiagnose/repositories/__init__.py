"""Repositories package - data access layer."""
from .access_repository import PermissionRepository, RoleRepository
from .appointment_repository import AppointmentRepository
from .authentication_repository import AuthenticationRepository
from .medical_record_repository import MedicalRecordRepository
from .user_repository import UserRepository

__all__ = [
    "AppointmentRepository",
    "AuthenticationRepository",
    "MedicalRecordRepository",
    "PermissionRepository",
    "RoleRepository",
    "UserRepository",
]
