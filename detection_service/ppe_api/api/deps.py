"""
FastAPI dependencies for the shared service instances.
"""
from fastapi import Request

from ppe_api.services.artifacts import ArtifactManager
from ppe_api.services.detection import PPEDetectionService


def get_artifact_manager(request: Request) -> ArtifactManager:
    return request.app.state.artifact_manager


def get_detection_service(request: Request) -> PPEDetectionService:
    return request.app.state.detection_service
