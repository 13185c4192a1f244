"""
Draws classified equipment detections onto a copy of the source image.
"""
import math
from typing import Iterator, Tuple

import cv2
import numpy as np

from ppe_api.models.ppe import DetectionStatus, Person
from ppe_api.services.classifier import ClassifiedEquipment, PixelRect, classify_equipment


# BGR colours per status; statuses without a colour are not drawn
STATUS_COLORS = {
    DetectionStatus.DETECTED: (0, 255, 0),       # Bright green
    DetectionStatus.INDETERMINATE: (0, 255, 255)  # Yellow
}
FILL_ALPHA = 0x20 / 0xFF
OUTLINE_THICKNESS = 3


def iter_classified_equipment(
    person: Person,
    image_width: int,
    image_height: int,
    threshold: float
) -> Iterator[ClassifiedEquipment]:
    """Yield classified equipment in body part order, then detection order."""
    for body_part in person.body_parts:
        for equipment in body_part.equipment_detections:
            yield classify_equipment(equipment, image_width, image_height, threshold)


def _clamp_rect(rect: PixelRect, image_width: int, image_height: int) -> Tuple[int, int, int, int]:
    """Return (x1, y1, x2, y2) clipped to the image, x2/y2 exclusive."""
    x1 = min(max(rect.x, 0), image_width)
    y1 = min(max(rect.y, 0), image_height)
    x2 = min(max(int(round(rect.x + rect.w)), 0), image_width)
    y2 = min(max(int(round(rect.y + rect.h)), 0), image_height)
    return x1, y1, x2, y2


def draw_detection_box(image: np.ndarray, rect: PixelRect, color: Tuple[int, int, int]) -> None:
    """Fill ``rect`` with a translucent tint and stroke a solid outline, in place."""
    if not (math.isfinite(rect.w) and math.isfinite(rect.h)):
        return
    height, width = image.shape[:2]
    x1, y1, x2, y2 = _clamp_rect(rect, width, height)
    if x2 <= x1 or y2 <= y1:
        return

    # Blend only the region of interest
    roi = image[y1:y2, x1:x2]
    overlay = np.empty_like(roi)
    overlay[:] = color
    image[y1:y2, x1:x2] = cv2.addWeighted(overlay, FILL_ALPHA, roi, 1 - FILL_ALPHA, 0)

    cv2.rectangle(image, (x1, y1), (x2 - 1, y2 - 1), color, OUTLINE_THICKNESS)


def render_annotations(image: np.ndarray, person: Person, threshold: float) -> np.ndarray:
    """
    Draw a person's equipment detections on a full-resolution copy of an image.

    Args:
        image: Source image (BGR); never modified
        person: Detected person whose body parts carry the equipment
        threshold: Confidence threshold used to classify each detection

    Returns:
        Annotated copy of the image
    """
    annotated = image.copy()
    height, width = annotated.shape[:2]

    for classified in iter_classified_equipment(person, width, height, threshold):
        color = STATUS_COLORS.get(classified.status)
        if color is None or classified.rect is None:
            continue
        draw_detection_box(annotated, classified.rect, color)

    return annotated
