import os
import tempfile

# Settings are read at import time, so point them away from the working tree first
_scratch = tempfile.mkdtemp(prefix="ppe-tests-")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("PROCESSED_IMAGES_DIR", os.path.join(_scratch, "processed-images"))
os.environ.setdefault("UPLOAD_DIR", os.path.join(_scratch, "uploads"))
os.environ.setdefault("AWS_REGION", "us-east-1")

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from ppe_api.main import create_app
from ppe_api.models.ppe import Person
from ppe_api.services.artifacts import ArtifactManager
from ppe_api.services.detection import PPEDetectionService
from ppe_api.services.rekognition import RekognitionService

from payloads import person_payload


IMAGE_WIDTH = 1000
IMAGE_HEIGHT = 800


class FakeRekognitionClient:
    """Stands in for the boto3 client; records every call."""

    def __init__(self, response=None, error=None):
        self.response = response if response is not None else {"Persons": []}
        self.error = error
        self.calls = []

    def detect_protective_equipment(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def make_person():
    def _make(**kwargs):
        return Person.model_validate(person_payload(**kwargs))
    return _make


@pytest.fixture
def source_image():
    return np.zeros((IMAGE_HEIGHT, IMAGE_WIDTH, 3), dtype=np.uint8)


@pytest.fixture
def jpeg_bytes(source_image):
    success, buffer = cv2.imencode(".jpg", source_image)
    assert success
    return buffer.tobytes()


@pytest.fixture
def artifact_manager(tmp_path):
    return ArtifactManager(
        directory=str(tmp_path / "processed-images"),
        base_url="http://testserver/processed-images"
    )


@pytest.fixture
def rekognition_client():
    return FakeRekognitionClient()


@pytest.fixture
def detection_service(rekognition_client, artifact_manager, tmp_path):
    service = PPEDetectionService(
        rekognition=RekognitionService(client=rekognition_client),
        artifacts=artifact_manager,
        max_workers=4,
        upload_dir=str(tmp_path / "uploads")
    )
    yield service
    service.shutdown()


@pytest.fixture
def client(detection_service, artifact_manager):
    app = create_app(detection_service=detection_service, artifact_manager=artifact_manager)
    with TestClient(app) as test_client:
        yield test_client
