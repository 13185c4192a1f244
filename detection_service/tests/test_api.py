import asyncio
import os
import time

import pytest
from botocore.exceptions import ClientError
from fastapi import BackgroundTasks, UploadFile
from starlette.datastructures import Headers

from ppe_api.api.api_v1.endpoints.detections import detect_ppe
from ppe_api.api.api_v1.endpoints.maintenance import cleanup_generated_images
from ppe_api.core.exceptions import PayloadTooLargeError

from payloads import body_part, person_payload


HEAD = (0.25, 0.125, 0.1, 0.1)


def _upload(client, image_bytes, content_type="image/jpeg", **form):
    return client.post(
        "/api/detect",
        files={"image": ("site.jpg", image_bytes, content_type)},
        data=form
    )


def _one_person(head_confidence=None):
    equipment = [("HEAD_COVER", head_confidence, HEAD)] if head_confidence is not None else []
    return {"Persons": [
        person_payload(person_id=0, box=(0.2, 0.1, 0.5, 0.8), body_parts=[
            body_part("HEAD", equipment=equipment),
            body_part("FACE"),
        ])
    ]}


def test_detected_hard_hat(client, rekognition_client, artifact_manager, jpeg_bytes):
    rekognition_client.response = _one_person(head_confidence=90.0)
    response = _upload(client, jpeg_bytes, confidence_threshold="80")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "PPE detection completed successfully"
    assert body["data"]["image_metadata"] == {"width": 1000, "height": 800, "format": "jpeg"}

    result = body["data"]["results"][0]
    assert result["personId"] == 1
    assert result["hardHat"] == {"status": "Detected", "confidence": 90}
    assert result["safetyVest"] == {"status": "Not Supported", "confidence": 0}
    assert result["image"].startswith("http://testserver/processed-images/person_0_")

    file_name = result["image"].rsplit("/", 1)[-1]
    assert os.path.exists(os.path.join(artifact_manager.directory, file_name))


def test_generated_image_is_served(client, rekognition_client, jpeg_bytes):
    rekognition_client.response = _one_person(head_confidence=90.0)
    image_url = _upload(client, jpeg_bytes).json()["data"]["results"][0]["image"]

    served = client.get(image_url.replace("http://testserver", ""))
    assert served.status_code == 200
    assert served.content.startswith(b"\x89PNG")


def test_higher_threshold_makes_hard_hat_indeterminate(client, rekognition_client, jpeg_bytes):
    rekognition_client.response = _one_person(head_confidence=90.0)
    response = _upload(client, jpeg_bytes, confidence_threshold="95")

    assert response.json()["data"]["results"][0]["hardHat"] == {"status": "Indeterminate", "confidence": 90}


def test_missing_hard_hat(client, rekognition_client, jpeg_bytes):
    rekognition_client.response = _one_person()
    response = _upload(client, jpeg_bytes)

    assert response.json()["data"]["results"][0]["hardHat"] == {"status": "Not Detected", "confidence": 0}


def test_threshold_field_alias_and_default(client, rekognition_client, jpeg_bytes):
    rekognition_client.response = _one_person(head_confidence=90.0)

    aliased = _upload(client, jpeg_bytes, confidenceThreshold="95")
    assert aliased.json()["data"]["results"][0]["hardHat"]["status"] == "Indeterminate"

    fallback = _upload(client, jpeg_bytes, confidence_threshold="not-a-number")
    assert fallback.json()["data"]["results"][0]["hardHat"]["status"] == "Detected"
    assert rekognition_client.calls[-1]["SummarizationAttributes"]["MinConfidence"] == 80.0


def test_wrong_mime_type_is_rejected(client, rekognition_client, artifact_manager, jpeg_bytes):
    response = _upload(client, jpeg_bytes, content_type="application/pdf")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error_type"] == "validation_error"
    assert "Invalid file type" in body["message"]
    assert rekognition_client.calls == []
    assert os.listdir(artifact_manager.directory) == []


def test_oversized_upload_is_rejected(client, rekognition_client, jpeg_bytes):
    response = _upload(client, b"\xff" * (10 * 1024 * 1024 + 1))

    assert response.status_code == 413
    assert response.json()["error_type"] == "validation_error"
    assert rekognition_client.calls == []


class UnreadableFile:
    def read(self, *args):
        raise AssertionError("upload body should not be read")

    def seek(self, *args):
        raise AssertionError("upload body should not be read")


def test_declared_size_is_checked_before_reading(rekognition_client, detection_service, artifact_manager):
    upload = UploadFile(
        file=UnreadableFile(),
        size=10 * 1024 * 1024 + 1,
        filename="huge.jpg",
        headers=Headers({"content-type": "image/jpeg"})
    )

    with pytest.raises(PayloadTooLargeError):
        asyncio.run(detect_ppe(
            BackgroundTasks(),
            image=upload,
            confidence_threshold=None,
            confidenceThreshold=None,
            detection_service=detection_service,
            artifact_manager=artifact_manager
        ))
    assert rekognition_client.calls == []


def test_missing_file_is_a_validation_error(client):
    response = client.post("/api/detect", data={"confidence_threshold": "80"})

    assert response.status_code == 422
    assert response.json()["error_type"] == "validation_error"


def test_external_failure_is_reported_distinctly(client, rekognition_client, detection_service, jpeg_bytes):
    rekognition_client.error = ClientError(
        {"Error": {"Code": "AccessDeniedException", "Message": "User is not authorized"}},
        "DetectProtectiveEquipment"
    )
    response = _upload(client, jpeg_bytes)

    assert response.status_code == 502
    body = response.json()
    assert body == {
        "success": False,
        "error": "Failed to process image with AWS Rekognition",
        "error_type": "external_service_error",
        "message": "User is not authorized"
    }
    assert os.listdir(detection_service.upload_dir) == []


def test_internal_failure_does_not_leak_details(client, rekognition_client, detection_service, jpeg_bytes):
    rekognition_client.response = _one_person(head_confidence=90.0)

    def broken(*args, **kwargs):
        raise RuntimeError("/secret/path exploded")

    detection_service.process_person = broken
    response = _upload(client, jpeg_bytes)

    assert response.status_code == 500
    body = response.json()
    assert body["error_type"] == "internal_error"
    assert "/secret/path" not in response.text
    assert os.listdir(detection_service.upload_dir) == []


def test_generated_files_are_deleted_after_the_response(client, rekognition_client, artifact_manager, jpeg_bytes):
    artifact_manager.delete_delay = 0.05
    rekognition_client.response = _one_person(head_confidence=90.0)
    image_url = _upload(client, jpeg_bytes).json()["data"]["results"][0]["image"]
    path = os.path.join(artifact_manager.directory, image_url.rsplit("/", 1)[-1])

    for _ in range(100):
        if not os.path.exists(path):
            break
        time.sleep(0.02)
    assert not os.path.exists(path)


def test_health(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_config(client):
    body = client.get("/api/config").json()

    assert body["supported_formats"] == ["image/jpeg", "image/jpg", "image/png"]
    assert body["max_file_size"] == 10485760
    assert body["max_persons_per_image"] == 10
    assert body["confidence_range"] == {"min": 0.0, "max": 100.0}


def test_cleanup_purges_generated_images(client, rekognition_client, artifact_manager, jpeg_bytes):
    rekognition_client.response = _one_person(head_confidence=90.0)
    _upload(client, jpeg_bytes)
    _upload(client, jpeg_bytes)

    response = client.post("/api/cleanup")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Cleanup completed successfully", "removed": 2}
    assert os.listdir(artifact_manager.directory) == []


def test_cleanup_runs_in_the_threadpool():
    # Sync endpoints are dispatched to the threadpool, keeping file I/O off the event loop
    assert not asyncio.iscoroutinefunction(cleanup_generated_images)
