"""
AWS Rekognition client for protective equipment detection.
"""
from typing import Any, List, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger
from pydantic import ValidationError as SchemaValidationError

from ppe_api.core.config import settings
from ppe_api.core.exceptions import ExternalServiceError
from ppe_api.models.ppe import Person


# Rekognition rejects SummarizationAttributes.MinConfidence outside this range
MIN_CONFIDENCE_FLOOR = 50.0
MIN_CONFIDENCE_CEILING = 100.0


class RekognitionService:
    """
    Service for AWS Rekognition interactions.
    """

    def __init__(self, client: Any = None):
        """
        Initialize the Rekognition client.

        Args:
            client: Pre-built boto3 Rekognition client (one is created from
                settings when omitted)
        """
        self.client = client or boto3.client(
            "rekognition",
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            region_name=settings.AWS_REGION,
            config=Config(
                connect_timeout=settings.REKOGNITION_CONNECT_TIMEOUT,
                read_timeout=settings.REKOGNITION_READ_TIMEOUT,
                retries={"max_attempts": settings.REKOGNITION_MAX_ATTEMPTS, "mode": "standard"}
            )
        )

    def detect_protective_equipment(
        self,
        image_bytes: bytes,
        min_confidence: float,
        required_equipment_types: Sequence[str] = None
    ) -> List[Person]:
        """
        Detect protective equipment on the persons in an image.

        Args:
            image_bytes: Raw JPEG or PNG bytes
            min_confidence: Summary confidence threshold, clamped to 50-100
            required_equipment_types: Equipment types to summarize on

        Returns:
            Detected persons in response order

        Raises:
            ExternalServiceError: If the call fails or the response is malformed
        """
        equipment_types = list(required_equipment_types or settings.REQUIRED_EQUIPMENT_TYPES)
        summary_confidence = min(max(float(min_confidence), MIN_CONFIDENCE_FLOOR), MIN_CONFIDENCE_CEILING)

        try:
            response = self.client.detect_protective_equipment(
                Image={"Bytes": image_bytes},
                SummarizationAttributes={
                    "MinConfidence": summary_confidence,
                    "RequiredEquipmentTypes": equipment_types
                }
            )
        except ClientError as e:
            message = e.response.get("Error", {}).get("Message") or str(e)
            logger.error(f"Rekognition Error: {message}")
            raise ExternalServiceError(message) from e
        except BotoCoreError as e:
            logger.error(f"Rekognition Error: {e}")
            raise ExternalServiceError(str(e)) from e

        try:
            persons = [Person.model_validate(p) for p in response.get("Persons") or []]
        except SchemaValidationError as e:
            logger.error(f"Unexpected Rekognition response: {e}")
            raise ExternalServiceError("Unexpected response from detection service") from e

        logger.info(f"Rekognition detected {len(persons)} person(s)")
        return persons
