"""Models package - SQLAlchemy ORM models."""
from .appointment import Appointment
from .authentication import Authentication
from .medical_record import MedicalRecord
from .permission import Permission
from .role import Role, role_permissions
from .user import User, user_permissions, user_roles

__all__ = [
    "Appointment",
    "Authentication",
    "MedicalRecord",
    "Permission",
    "Role",
    "User",
    "role_permissions",
    "user_permissions",
    "user_roles",
]
