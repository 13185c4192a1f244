"""
Administrative endpoints.
"""
from fastapi import APIRouter, Depends, status

from ppe_api.api.deps import get_artifact_manager
from ppe_api.models.schemas.common import CleanupResponse
from ppe_api.services.artifacts import ArtifactManager


router = APIRouter()


@router.post(
    "",
    response_model=CleanupResponse,
    status_code=status.HTTP_200_OK,
    summary="Purge Generated Images",
    description="Immediately delete every generated image in the artifact directory."
)
def cleanup_generated_images(artifact_manager: ArtifactManager = Depends(get_artifact_manager)):
    """
    Manual cleanup for debugging and administration.
    """
    removed = artifact_manager.purge_all()
    return CleanupResponse(
        success=True,
        message="Cleanup completed successfully",
        removed=removed
    )
