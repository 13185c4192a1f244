"""
Builds client-facing result records from Rekognition person detections.
"""
from typing import Sequence

from ppe_api.models.ppe import BodyPart, DetectionStatus, EquipmentType, Person
from ppe_api.models.schemas.detection import PersonResult, PPEItem, ResultBoundingBox
from ppe_api.services.classifier import classify_status, round_confidence


# Categories re-evaluated against the confidence threshold, in order
THRESHOLD_CATEGORIES = ("hard_hat", "face_mask", "hand_protection_l", "hand_protection_r")


def equipment_status(body_parts: Sequence[BodyPart], equipment_type: str) -> PPEItem:
    """
    Look up the first detection of ``equipment_type`` across a person's body parts.

    Returns DETECTED with the rounded detection confidence when found,
    NOT_DETECTED with confidence 0 otherwise.
    """
    for body_part in body_parts:
        for equipment in body_part.equipment_detections:
            if equipment.type == equipment_type:
                return PPEItem(
                    status=DetectionStatus.DETECTED,
                    confidence=round_confidence(equipment.confidence)
                )
    return PPEItem(status=DetectionStatus.NOT_DETECTED, confidence=0)


def assemble_person_result(person: Person, index: int, image_url: str) -> PersonResult:
    """
    Map a detected person to a result record.

    Rekognition reports hand covers without laterality, so the left and
    right hand fields always carry the same value.
    """
    hand_cover = equipment_status(person.body_parts, EquipmentType.HAND_COVER.value)
    box = person.bounding_box

    return PersonResult(
        person_id=index + 1,
        confidence=round_confidence(person.confidence),
        image=image_url,
        bounding_box=ResultBoundingBox(x=box.left, y=box.top, width=box.width, height=box.height),
        hard_hat=equipment_status(person.body_parts, EquipmentType.HEAD_COVER.value),
        face_mask=equipment_status(person.body_parts, EquipmentType.FACE_COVER.value),
        hand_protection_l=hand_cover,
        hand_protection_r=hand_cover.model_copy()
    )


def apply_threshold(result: PersonResult, threshold: float) -> PersonResult:
    """Re-classify detected items against ``threshold``; items under it become INDETERMINATE."""
    updates = {}
    for category in THRESHOLD_CATEGORIES:
        item: PPEItem = getattr(result, category)
        if item.status != DetectionStatus.DETECTED:
            continue
        status = classify_status(item.confidence, threshold)
        if status != DetectionStatus.DETECTED:
            updates[category] = PPEItem(status=status, confidence=item.confidence)

    if not updates:
        return result
    return result.model_copy(update=updates)
