"""
Common schemas used across the API.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ResponseStatus(BaseModel):
    """Base schema for API response status."""
    success: bool
    message: Optional[str] = None


class ErrorResponse(ResponseStatus):
    """Schema for error responses."""
    success: bool = False
    error: str
    error_type: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "error": "Failed to process image with AWS Rekognition",
                "error_type": "external_service_error",
                "message": "The security token included in the request is invalid."
            }
        }
    )


class CleanupResponse(ResponseStatus):
    """Schema for the manual cleanup endpoint."""
    removed: int = 0


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str
    message: str
    version: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "ok",
                "message": "PPE Detection API is running",
                "version": "1.0.0"
            }
        }
    )
