"""
Confidence classification and pixel geometry for equipment detections.
"""
import math
from dataclasses import dataclass
from typing import Optional

from ppe_api.models.ppe import BoundingBox, DetectionStatus, EquipmentDetection


@dataclass(frozen=True)
class PixelRect:
    """Rectangle in absolute pixels. Origin is floored, size is not."""
    x: int
    y: int
    w: float
    h: float


@dataclass(frozen=True)
class ClassifiedEquipment:
    status: DetectionStatus
    rect: Optional[PixelRect]


def round_confidence(confidence: Optional[float]) -> int:
    """
    Round a confidence score half-up to a whole percentage.

    Missing, NaN or negative scores become 0.
    """
    if confidence is None:
        return 0
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return 0
    if math.isnan(value) or value <= 0:
        return 0
    if math.isinf(value):
        return 100
    return int(math.floor(value + 0.5))


def classify_status(confidence: Optional[float], threshold: float) -> DetectionStatus:
    """
    Classify a confidence score against a threshold.

    Args:
        confidence: Score in [0, 100], or None when nothing was detected
        threshold: Minimum score for a positive detection

    Returns:
        DETECTED when confidence >= threshold, INDETERMINATE when
        0 < confidence < threshold, NOT_DETECTED otherwise
    """
    if confidence is None:
        return DetectionStatus.NOT_DETECTED
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return DetectionStatus.NOT_DETECTED
    if math.isnan(value) or value <= 0:
        return DetectionStatus.NOT_DETECTED
    if value >= threshold:
        return DetectionStatus.DETECTED
    return DetectionStatus.INDETERMINATE


def is_finite_box(box: BoundingBox) -> bool:
    return all(math.isfinite(v) for v in (box.left, box.top, box.width, box.height))


def to_pixel_rect(box: BoundingBox, image_width: int, image_height: int) -> PixelRect:
    """Scale a normalized bounding box to absolute pixel coordinates."""
    return PixelRect(
        x=math.floor(box.left * image_width),
        y=math.floor(box.top * image_height),
        w=box.width * image_width,
        h=box.height * image_height
    )


def classify_equipment(
    equipment: EquipmentDetection,
    image_width: int,
    image_height: int,
    threshold: float
) -> ClassifiedEquipment:
    """
    Classify one equipment detection and place it on the image.

    The status is derived from the rounded confidence, matching the
    whole-number confidences reported back to clients. ``rect`` is None
    when the detection carries no usable bounding box.
    """
    status = classify_status(round_confidence(equipment.confidence), threshold)
    rect = None
    if equipment.bounding_box is not None and is_finite_box(equipment.bounding_box):
        rect = to_pixel_rect(equipment.bounding_box, image_width, image_height)
    return ClassifiedEquipment(status=status, rect=rect)
