"""
Health check API endpoint.
"""
from fastapi import APIRouter, status

from ppe_api.core.config import settings
from ppe_api.models.schemas.common import HealthResponse


router = APIRouter()


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health Check",
    description="Liveness probe for the detection service."
)
async def health_check():
    """
    Report that the API is up.
    """
    return {
        "status": "ok",
        "message": "PPE Detection API is running",
        "version": settings.VERSION
    }
