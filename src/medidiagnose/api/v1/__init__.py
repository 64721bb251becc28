"""API v1 - versioned router.

Router structure
----------------
PUBLIC (no auth):
  /health, /ready, /live  -> health checks
  /auth/register          -> patient self-registration
  /auth/verify            -> email verification link
  /auth/login             -> access token

AUTHENTICATED (any valid JWT):
  /auth/me                -> own profile
  /patient/*              -> own results, profile and appointments

STAFF (superuser or staff flag):
  /admin                  -> access probe, dashboard stats, activity log
  /admin/users/*          -> user management
  /admin/permissions      -> permission catalogue
  /admin/roles            -> role catalogue
  /doctor/*               -> dashboard, patient search, scan details
"""
from fastapi import APIRouter

from .endpoints import (
    admin,
    admin_access,
    admin_users,
    auth,
    doctor,
    health,
    patient,
)

router = APIRouter(prefix="/api/v1")

# =========================================================================
# PUBLIC ENDPOINTS
# =========================================================================

router.include_router(health.router, tags=["Health"])

# /auth/me is guarded inside the router
router.include_router(auth.router)

# =========================================================================
# PROTECTED ENDPOINTS - each endpoint declares its claims dependency
# =========================================================================

router.include_router(admin.router)
router.include_router(admin_users.router)
router.include_router(admin_access.router)
router.include_router(doctor.router)
router.include_router(patient.router)
