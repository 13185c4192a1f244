"""
Schemas for PPE detection endpoints.

Field names are snake_case in Python and camelCase on the wire, which is
the shape the report and UI layers consume.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ppe_api.models.ppe import DetectionStatus


class PPEItem(BaseModel):
    """Status of one protective equipment category for one person."""
    status: DetectionStatus
    confidence: int = 0

    model_config = ConfigDict(use_enum_values=True)


def not_supported() -> PPEItem:
    return PPEItem(status=DetectionStatus.NOT_SUPPORTED, confidence=0)


class ResultBoundingBox(BaseModel):
    """Person bounding box, normalized to the image dimensions."""
    x: float
    y: float
    width: float
    height: float


class PersonResult(BaseModel):
    """Schema for one detected person."""
    person_id: int = Field(..., alias="personId")
    confidence: int
    image: str
    bounding_box: ResultBoundingBox = Field(..., alias="boundingBox")
    hard_hat: PPEItem = Field(..., alias="hardHat")
    face_mask: PPEItem = Field(..., alias="faceMask")
    hand_protection_l: PPEItem = Field(..., alias="handProtectionL")
    hand_protection_r: PPEItem = Field(..., alias="handProtectionR")
    safety_vest: PPEItem = Field(default_factory=not_supported, alias="safetyVest")
    boots: PPEItem = Field(default_factory=not_supported, alias="boots")

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "personId": 1,
                "confidence": 99,
                "image": "http://localhost:8000/processed-images/person_0_3f2c.png",
                "boundingBox": {"x": 0.21, "y": 0.12, "width": 0.3, "height": 0.8},
                "hardHat": {"status": "Detected", "confidence": 97},
                "faceMask": {"status": "Not Detected", "confidence": 0},
                "handProtectionL": {"status": "Indeterminate", "confidence": 72},
                "handProtectionR": {"status": "Indeterminate", "confidence": 72},
                "safetyVest": {"status": "Not Supported", "confidence": 0},
                "boots": {"status": "Not Supported", "confidence": 0}
            }
        }
    )


class ImageMetadata(BaseModel):
    width: int
    height: int
    format: Optional[str] = None


class DetectionData(BaseModel):
    results: List[PersonResult]
    processing_time: float
    image_metadata: ImageMetadata


class DetectionResponse(BaseModel):
    """Schema for the detection endpoint response."""
    success: bool = True
    data: DetectionData
    message: str = "PPE detection completed successfully"


class ConfidenceRange(BaseModel):
    min: float
    max: float


class ServiceConfigResponse(BaseModel):
    """Capabilities advertised to clients."""
    supported_formats: List[str]
    max_file_size: int
    max_persons_per_image: int
    confidence_range: ConfidenceRange
    default_confidence_threshold: float
