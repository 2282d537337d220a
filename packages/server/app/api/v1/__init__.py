"""
API v1 Router
"""

from fastapi import APIRouter
from . import hubs, join_requests, resources

router = APIRouter()

router.include_router(resources.router, prefix="/resources", tags=["Resources"])
router.include_router(join_requests.router, prefix="/join-requests", tags=["Join Requests"])
router.include_router(hubs.router, prefix="/hubs", tags=["Hubs"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/resources/{resourceId}/access",
            "/resources/{resourceId}/join-requests",
            "/resources/{resourceId}/membership",
            "/join-requests/{requestId}/resolve",
            "/join-requests/mine",
            "/hubs/{hubId}/join-requests",
        ],
    }
