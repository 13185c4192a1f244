from ppe_api.models.ppe import DetectionStatus
from ppe_api.services.assembler import (
    THRESHOLD_CATEGORIES,
    apply_threshold,
    assemble_person_result,
    equipment_status
)

from payloads import body_part


BOX = (0.1, 0.1, 0.1, 0.1)


def test_first_matching_detection_wins(make_person):
    person = make_person(body_parts=[
        body_part("FACE", equipment=[("FACE_COVER", 88.4, BOX)]),
        body_part("HEAD", equipment=[("HEAD_COVER", 90.5, BOX)]),
        body_part("LEFT_HAND", equipment=[("HEAD_COVER", 12, BOX)]),
    ])
    item = equipment_status(person.body_parts, "HEAD_COVER")

    assert item.status == DetectionStatus.DETECTED
    assert item.confidence == 91


def test_missing_detection_is_not_detected_with_zero_confidence(make_person):
    person = make_person(body_parts=[
        body_part("HEAD", confidence=97.0),
        body_part("FACE", equipment=[("FACE_COVER", 88, BOX)]),
    ])
    item = equipment_status(person.body_parts, "HEAD_COVER")

    assert item.status == DetectionStatus.NOT_DETECTED
    assert item.confidence == 0


def test_assemble_person_result(make_person):
    person = make_person(person_id=4, confidence=99.6, box=(0.2, 0.1, 0.5, 0.8), body_parts=[
        body_part("HEAD", equipment=[("HEAD_COVER", 97.2, BOX)]),
        body_part("RIGHT_HAND", equipment=[("HAND_COVER", 85.5, BOX)]),
    ])
    result = assemble_person_result(person, index=2, image_url="http://testserver/processed-images/p.png")

    assert result.person_id == 3
    assert result.confidence == 100
    assert result.image == "http://testserver/processed-images/p.png"
    assert (result.bounding_box.x, result.bounding_box.y) == (0.2, 0.1)
    assert (result.bounding_box.width, result.bounding_box.height) == (0.5, 0.8)
    assert result.hard_hat.status == DetectionStatus.DETECTED
    assert result.hard_hat.confidence == 97
    assert result.face_mask.status == DetectionStatus.NOT_DETECTED
    assert result.safety_vest.status == DetectionStatus.NOT_SUPPORTED
    assert result.boots.status == DetectionStatus.NOT_SUPPORTED
    assert result.boots.confidence == 0


def test_hand_protection_is_reported_for_both_hands(make_person):
    person = make_person(body_parts=[
        body_part("LEFT_HAND", equipment=[("HAND_COVER", 70, BOX)]),
    ])
    result = assemble_person_result(person, index=0, image_url="x")

    assert result.hand_protection_l == result.hand_protection_r
    assert result.hand_protection_r.confidence == 70


def test_wire_format_uses_client_field_names(make_person):
    result = assemble_person_result(make_person(), index=0, image_url="x")
    payload = result.model_dump(by_alias=True, mode="json")

    assert set(payload) == {
        "personId", "confidence", "image", "boundingBox", "hardHat", "faceMask",
        "handProtectionL", "handProtectionR", "safetyVest", "boots"
    }
    assert payload["safetyVest"] == {"status": "Not Supported", "confidence": 0}
    assert payload["hardHat"] == {"status": "Not Detected", "confidence": 0}


def test_apply_threshold_demotes_low_confidence_detections(make_person):
    person = make_person(body_parts=[
        body_part("HEAD", equipment=[("HEAD_COVER", 90, BOX)]),
        body_part("FACE", equipment=[("FACE_COVER", 96, BOX)]),
        body_part("LEFT_HAND", equipment=[("HAND_COVER", 94, BOX)]),
    ])
    result = apply_threshold(assemble_person_result(person, index=0, image_url="x"), threshold=95)

    assert result.hard_hat.status == DetectionStatus.INDETERMINATE
    assert result.hard_hat.confidence == 90
    assert result.face_mask.status == DetectionStatus.DETECTED
    assert result.hand_protection_l.status == DetectionStatus.INDETERMINATE
    assert result.hand_protection_r.status == DetectionStatus.INDETERMINATE


def test_apply_threshold_leaves_other_statuses_alone(make_person):
    result = assemble_person_result(make_person(), index=0, image_url="x")
    updated = apply_threshold(result, threshold=95)

    for category in THRESHOLD_CATEGORIES:
        assert getattr(updated, category).status == DetectionStatus.NOT_DETECTED
    assert updated.safety_vest.status == DetectionStatus.NOT_SUPPORTED
