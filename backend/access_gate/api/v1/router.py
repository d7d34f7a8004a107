"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from access_gate.api.v1 import access_requests, committee, join, verify

router = APIRouter()

# =============================================================================
# Public access flow
# =============================================================================

router.include_router(verify.router, tags=["access"])
router.include_router(join.router, tags=["access"])
router.include_router(access_requests.router, tags=["access-requests"])

# =============================================================================
# Committee console
# =============================================================================

router.include_router(committee.router, prefix="/committee", tags=["committee"])
