"""
Configuration settings for the PPE Detection Service.
"""
from typing import Annotated, List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.
    """
    PROJECT_NAME: str = "PPE Detection Service"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    PROJECT_DESCRIPTION: str = "Personal protective equipment detection backed by AWS Rekognition"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG_MODE: bool = False

    # Public base URL used to build links to generated images
    SERVER_URL: str = "http://localhost:8000"

    # CORS settings
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    @field_validator("CORS_ORIGINS", "SUPPORTED_FORMATS", "REQUIRED_EQUIPMENT_TYPES", mode="before")
    def split_comma_separated(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # AWS settings
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    REQUIRED_EQUIPMENT_TYPES: Annotated[List[str], NoDecode] = ["FACE_COVER", "HAND_COVER", "HEAD_COVER"]
    REKOGNITION_CONNECT_TIMEOUT: float = 5.0
    REKOGNITION_READ_TIMEOUT: float = 30.0
    REKOGNITION_MAX_ATTEMPTS: int = 3

    # Storage
    UPLOAD_DIR: str = "uploads"
    PROCESSED_IMAGES_DIR: str = "processed-images"
    PROCESSED_IMAGES_URL: str = "/processed-images"

    # Detection limits
    DEFAULT_CONFIDENCE_THRESHOLD: float = 80.0
    CONFIDENCE_MIN: float = 0.0
    CONFIDENCE_MAX: float = 100.0
    SUPPORTED_FORMATS: Annotated[List[str], NoDecode] = ["image/jpeg", "image/jpg", "image/png"]
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10MB
    MAX_PERSONS_PER_IMAGE: int = 10

    # Generated image lifecycle (seconds)
    ARTIFACT_DELETE_DELAY: float = 60.0
    ARTIFACT_MAX_AGE: float = 120.0
    ARTIFACT_SWEEP_INTERVAL: float = 300.0

    # Worker threads for per-person image processing
    MAX_WORKERS: int = 4

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = True
    LOGS_DIR: str = "logs"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow"  # Allow extra fields in environment variables
    )


# Create settings instance
settings = Settings()
