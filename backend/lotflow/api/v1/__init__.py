"""
API v1 Router - LotFlow
"""
from fastapi import APIRouter

from lotflow.api.v1.endpoints import dashboards, laundry, security, triggers

router = APIRouter()

# Firestore lot update events
router.include_router(triggers.router)

# Admin password confirmation
router.include_router(security.router)

# Stage navigation
router.include_router(dashboards.router)

# Laundry figures
router.include_router(laundry.router)
