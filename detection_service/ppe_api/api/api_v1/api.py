"""
Main API router that includes all endpoint groups.
"""
from fastapi import APIRouter

from ppe_api.api.api_v1.endpoints import (
    detections,
    health,
    maintenance,
    service_config
)

# Create the main API router
api_router = APIRouter()

# Include all endpoint groups
api_router.include_router(
    detections.router,
    prefix="/detect",
    tags=["Detection"]
)

api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"]
)

api_router.include_router(
    service_config.router,
    prefix="/config",
    tags=["Configuration"]
)

api_router.include_router(
    maintenance.router,
    prefix="/cleanup",
    tags=["Maintenance"]
)
