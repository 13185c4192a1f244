"""
Detection API endpoint for uploaded images.
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from loguru import logger

from ppe_api.api.deps import get_artifact_manager, get_detection_service
from ppe_api.core.config import settings
from ppe_api.core.exceptions import APIError, PayloadTooLargeError, ProcessingError, ValidationError
from ppe_api.models.schemas.common import ErrorResponse
from ppe_api.models.schemas.detection import DetectionData, DetectionResponse
from ppe_api.services.artifacts import ArtifactManager
from ppe_api.services.detection import PPEDetectionService


router = APIRouter()


def parse_threshold(*values: Optional[str]) -> float:
    """
    Parse the first usable threshold form value.

    Empty, non-numeric and zero values fall back to the default threshold.
    """
    for value in values:
        if value is None:
            continue
        try:
            threshold = float(value)
        except (TypeError, ValueError):
            continue
        if threshold == threshold and threshold != 0:  # skip NaN and 0
            return threshold
    return settings.DEFAULT_CONFIDENCE_THRESHOLD


def validate_upload(image: UploadFile, size: Optional[int]) -> None:
    """
    Reject uploads before any cloud call is made.

    Called once with the declared upload size before the body is read and
    again with the actual byte count; a None size skips the size checks.

    Raises:
        ValidationError: For unsupported or empty files
        PayloadTooLargeError: For files over the size limit
    """
    if image.content_type not in settings.SUPPORTED_FORMATS:
        raise ValidationError("Invalid file type. Please upload a JPEG or PNG image.")
    if size is None:
        return
    if size > settings.MAX_FILE_SIZE:
        max_mb = settings.MAX_FILE_SIZE // (1024 * 1024)
        raise PayloadTooLargeError(f"File too large. Please upload an image smaller than {max_mb}MB.")
    if size == 0:
        raise ValidationError("Uploaded file is empty")


@router.post(
    "",
    response_model=DetectionResponse,
    status_code=status.HTTP_200_OK,
    summary="Detect PPE",
    description="Detect protective equipment on every person in an uploaded image.",
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse}
    }
)
async def detect_ppe(
    background_tasks: BackgroundTasks,
    image: UploadFile = File(..., description="JPEG or PNG image"),
    confidence_threshold: Optional[str] = Form(None),
    confidenceThreshold: Optional[str] = Form(None),
    detection_service: PPEDetectionService = Depends(get_detection_service),
    artifact_manager: ArtifactManager = Depends(get_artifact_manager)
):
    """
    Detect PPE in an uploaded image.

    - **image**: JPEG or PNG, up to the configured size limit
    - **confidence_threshold**: 0-100, defaults to 80

    Generated person images are deleted shortly after the response is sent.
    """
    threshold = parse_threshold(confidence_threshold, confidenceThreshold)
    validate_upload(image, image.size)
    data = await image.read()
    validate_upload(image, len(data))

    try:
        outcome = await detection_service.run(data, threshold)
    except APIError:
        raise
    except Exception as e:
        logger.opt(exception=e).error(f"Error processing image {image.filename}: {e}")
        raise ProcessingError("Error processing image") from e

    # Runs after the response has been sent
    background_tasks.add_task(artifact_manager.schedule_deletion, outcome.generated_files)

    return DetectionResponse(
        data=DetectionData(
            results=outcome.results,
            processing_time=outcome.processing_time,
            image_metadata=outcome.image_metadata
        )
    )
