"""API v1 endpoints package."""

from . import (
	admin,
	admin_access,
	admin_users,
	auth,
	doctor,
	health,
	patient,
)

__all__ = [
	"admin",
	"admin_access",
	"admin_users",
	"auth",
	"doctor",
	"health",
	"patient",
]
