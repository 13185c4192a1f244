"""
PPE detection pipeline: Rekognition call, per-person annotation, cropping
and result assembly.
"""
import asyncio
import functools
import io
import os
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np
from loguru import logger
from PIL import Image, UnidentifiedImageError

from ppe_api.core.config import settings
from ppe_api.core.exceptions import ValidationError
from ppe_api.models.ppe import Person
from ppe_api.models.schemas.detection import ImageMetadata, PersonResult
from ppe_api.services.annotator import render_annotations
from ppe_api.services.artifacts import ArtifactManager
from ppe_api.services.assembler import apply_threshold, assemble_person_result
from ppe_api.services.cropper import crop_person, encode_png
from ppe_api.services.rekognition import RekognitionService


@dataclass
class DecodedImage:
    """Uploaded image decoded once and shared read-only between persons."""
    pixels: np.ndarray
    width: int
    height: int
    format: Optional[str]

    @property
    def metadata(self) -> ImageMetadata:
        return ImageMetadata(width=self.width, height=self.height, format=self.format)


@dataclass
class PersonOutcome:
    result: PersonResult
    artifact_path: Optional[str] = None


@dataclass
class DetectionOutcome:
    results: List[PersonResult]
    image_metadata: ImageMetadata
    processing_time: float
    generated_files: List[str] = field(default_factory=list)


def placeholder_image_url(person_id: int) -> str:
    return f"{settings.SERVER_URL}/placeholder.svg?height=120&width=120&text=Person+{person_id}"


def decode_image(data: bytes) -> DecodedImage:
    """
    Decode uploaded bytes into a BGR pixel array plus format metadata.

    Raises:
        ValidationError: If the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as probe:
            image_format = probe.format.lower() if probe.format else None
    except Image.DecompressionBombError as e:
        raise ValidationError("Image dimensions are too large") from e
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Uploaded file is not a valid image") from e

    pixels = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR | cv2.IMREAD_IGNORE_ORIENTATION)
    if pixels is None:
        raise ValidationError("Uploaded file is not a valid image")

    height, width = pixels.shape[:2]
    return DecodedImage(pixels=pixels, width=width, height=height, format=image_format)


class PPEDetectionService:
    """Runs one detection request end to end."""

    def __init__(
        self,
        rekognition: RekognitionService = None,
        artifacts: ArtifactManager = None,
        max_workers: int = None,
        upload_dir: str = None
    ):
        self.rekognition = rekognition or RekognitionService()
        self.artifacts = artifacts or ArtifactManager()
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self._executor = ThreadPoolExecutor(max_workers=max_workers or settings.MAX_WORKERS)

    def stage_upload(self, data: bytes) -> str:
        """Write uploaded bytes to the upload directory and return the path."""
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = str(self.upload_dir / uuid.uuid4().hex)
        with open(path, "wb") as f:
            f.write(data)
        return path

    def discard_upload(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove uploaded file {path}: {e}")

    def process_person(
        self,
        image: DecodedImage,
        person: Person,
        index: int,
        threshold: float
    ) -> PersonOutcome:
        """
        Annotate, crop and save one person's image, then build their result.

        Rendering or cropping failures fall back to a placeholder image so a
        single person never fails the whole request.
        """
        artifact_path = None
        try:
            annotated = render_annotations(image.pixels, person, threshold)
            cropped = crop_person(annotated, person.bounding_box)
            artifact_path, image_url = self.artifacts.write(person.id, encode_png(cropped))
        except Exception as e:
            logger.opt(exception=e).error(f"Error processing person image {person.id}: {e}")
            image_url = placeholder_image_url(person.id)

        result = assemble_person_result(person, index, image_url)
        return PersonOutcome(result=apply_threshold(result, threshold), artifact_path=artifact_path)

    async def run(self, data: bytes, threshold: float) -> DetectionOutcome:
        """Stage an upload, detect on it and remove it again on every exit path."""
        upload_path = self.stage_upload(data)
        try:
            return await self.detect(upload_path, threshold)
        finally:
            self.discard_upload(upload_path)

    async def detect(self, upload_path: str, threshold: float) -> DetectionOutcome:
        """
        Detect PPE in an uploaded image and build per-person results.

        Args:
            upload_path: Path of the staged upload
            threshold: Confidence threshold (0-100)

        Returns:
            Results in Rekognition's person order, with the generated files

        Raises:
            ValidationError: If the image cannot be decoded
            ExternalServiceError: If Rekognition fails
        """
        start_time = time.time()
        image_bytes = Path(upload_path).read_bytes()
        image = decode_image(image_bytes)
        loop = asyncio.get_running_loop()

        persons = await loop.run_in_executor(
            self._executor,
            functools.partial(
                self.rekognition.detect_protective_equipment,
                image_bytes,
                threshold,
                settings.REQUIRED_EQUIPMENT_TYPES
            )
        )

        if len(persons) > settings.MAX_PERSONS_PER_IMAGE:
            logger.warning(
                f"{len(persons)} persons detected, keeping the first {settings.MAX_PERSONS_PER_IMAGE}"
            )
            persons = persons[:settings.MAX_PERSONS_PER_IMAGE]

        # gather keeps input order regardless of completion order
        outcomes = await asyncio.gather(
            *(
                loop.run_in_executor(self._executor, self.process_person, image, person, index, threshold)
                for index, person in enumerate(persons)
            ),
            return_exceptions=True
        )

        generated_files = [o.artifact_path for o in outcomes if isinstance(o, PersonOutcome) and o.artifact_path]
        failures = [o for o in outcomes if isinstance(o, BaseException)]
        if failures:
            # No partial results
            self.artifacts.delete_files(generated_files)
            raise failures[0]

        processing_time = round(time.time() - start_time, 3)
        logger.info(f"Processed {len(persons)} person(s) in {processing_time}s at threshold {threshold}")

        return DetectionOutcome(
            results=[o.result for o in outcomes],
            image_metadata=image.metadata,
            processing_time=processing_time,
            generated_files=generated_files
        )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
