"""
Capability descriptor consumed by clients before uploading.
"""
from fastapi import APIRouter, status

from ppe_api.core.config import settings
from ppe_api.models.schemas.detection import ServiceConfigResponse


router = APIRouter()


@router.get(
    "",
    response_model=ServiceConfigResponse,
    status_code=status.HTTP_200_OK,
    summary="Service Configuration",
    description="Supported formats, size limits and confidence bounds."
)
async def get_service_config():
    return ServiceConfigResponse(
        supported_formats=settings.SUPPORTED_FORMATS,
        max_file_size=settings.MAX_FILE_SIZE,
        max_persons_per_image=settings.MAX_PERSONS_PER_IMAGE,
        confidence_range={"min": settings.CONFIDENCE_MIN, "max": settings.CONFIDENCE_MAX},
        default_confidence_threshold=settings.DEFAULT_CONFIDENCE_THRESHOLD
    )
