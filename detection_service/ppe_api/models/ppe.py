"""
Domain models for protective equipment detections returned by AWS Rekognition.

The field aliases mirror the PascalCase keys of the
``DetectProtectiveEquipment`` response so a raw boto3 payload can be
validated directly with ``Person.model_validate(...)``.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class EquipmentType(str, Enum):
    """Equipment types Rekognition can recognise."""
    HEAD_COVER = "HEAD_COVER"
    FACE_COVER = "FACE_COVER"
    HAND_COVER = "HAND_COVER"


class BodyPartName(str, Enum):
    """Body parts Rekognition anchors equipment detections on."""
    FACE = "FACE"
    HEAD = "HEAD"
    LEFT_HAND = "LEFT_HAND"
    RIGHT_HAND = "RIGHT_HAND"


class DetectionStatus(str, Enum):
    """
    Status of one PPE category for one person.

    ``NOT_SUPPORTED`` is a fixed sentinel for categories the detection
    backend cannot recognise; it is never derived from a confidence value.
    """
    DETECTED = "Detected"
    INDETERMINATE = "Indeterminate"
    NOT_DETECTED = "Not Detected"
    NOT_SUPPORTED = "Not Supported"


class RekognitionModel(BaseModel):
    """Base model accepting both Rekognition keys and snake_case names."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BoundingBox(RekognitionModel):
    """Rectangle normalized to the image dimensions."""
    left: float = Field(0.0, alias="Left")
    top: float = Field(0.0, alias="Top")
    width: float = Field(0.0, alias="Width")
    height: float = Field(0.0, alias="Height")


class CoversBodyPart(RekognitionModel):
    confidence: float = Field(0.0, alias="Confidence")
    value: bool = Field(False, alias="Value")


class EquipmentDetection(RekognitionModel):
    """A single piece of equipment found on a body part."""
    type: str = Field(..., alias="Type")
    confidence: Optional[float] = Field(None, alias="Confidence")
    bounding_box: Optional[BoundingBox] = Field(None, alias="BoundingBox")
    covers_body_part: Optional[CoversBodyPart] = Field(None, alias="CoversBodyPart")


class BodyPart(RekognitionModel):
    name: str = Field(..., alias="Name")
    confidence: float = Field(0.0, alias="Confidence")
    equipment_detections: List[EquipmentDetection] = Field(default_factory=list, alias="EquipmentDetections")


class Person(RekognitionModel):
    """One person detected in the image, with their body parts in response order."""
    id: int = Field(0, alias="Id")
    confidence: float = Field(0.0, alias="Confidence")
    bounding_box: BoundingBox = Field(default_factory=BoundingBox, alias="BoundingBox")
    body_parts: List[BodyPart] = Field(default_factory=list, alias="BodyParts")
