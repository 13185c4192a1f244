"""
Extracts a single person's region from an annotated image.
"""
import math
from dataclasses import dataclass

import cv2
import numpy as np

from ppe_api.models.ppe import BoundingBox
from ppe_api.services.classifier import is_finite_box


class CropError(Exception):
    """Raised when a person's region cannot be extracted or encoded."""


@dataclass(frozen=True)
class CropRegion:
    x: int
    y: int
    w: int
    h: int


def crop_region(box: BoundingBox, image_width: int, image_height: int) -> CropRegion:
    """Compute the integer pixel region covered by a normalized bounding box."""
    return CropRegion(
        x=math.floor(box.left * image_width),
        y=math.floor(box.top * image_height),
        w=math.floor(box.width * image_width),
        h=math.floor(box.height * image_height)
    )


def crop_person(image: np.ndarray, box: BoundingBox) -> np.ndarray:
    """
    Cut the region described by ``box`` out of ``image``.

    Args:
        image: Annotated full image
        box: Person bounding box, normalized

    Returns:
        A standalone copy of the region

    Raises:
        CropError: If the region is empty, non-finite or extends past the image
    """
    if not is_finite_box(box):
        raise CropError(f"Non-finite bounding box {box}")

    height, width = image.shape[:2]
    region = crop_region(box, width, height)

    if region.w <= 0 or region.h <= 0:
        raise CropError(f"Empty crop region {region}")
    if region.x < 0 or region.y < 0 or region.x + region.w > width or region.y + region.h > height:
        raise CropError(f"Crop region {region} outside image bounds {width}x{height}")

    return image[region.y:region.y + region.h, region.x:region.x + region.w].copy()


def encode_png(image: np.ndarray) -> bytes:
    success, buffer = cv2.imencode(".png", image)
    if not success:
        raise CropError("PNG encoding failed")
    return buffer.tobytes()
