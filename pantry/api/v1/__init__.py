"""API v1 Router."""
from fastapi import APIRouter

from pantry.api.v1 import houses, scans

api_router = APIRouter(prefix="/api/v1")

# Include all route modules
api_router.include_router(scans.router)
api_router.include_router(houses.router)

__all__ = ["api_router"]
