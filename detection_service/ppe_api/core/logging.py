"""
Logging configuration for the PPE Detection Service.
"""
import sys
from pathlib import Path

from loguru import logger

from ppe_api.core.config import settings


def setup_logging():
    """
    Configure logging for the application.
    """
    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    )

    # Configure loguru
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format=log_format,
        level=settings.LOG_LEVEL,
        diagnose=settings.DEBUG_MODE
    )

    if settings.LOG_TO_FILE:
        logs_dir = Path(settings.LOGS_DIR)
        logs_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            str(logs_dir / "ppe_detection_{time:YYYY-MM-DD}.log"),
            rotation="00:00",  # new file at midnight
            retention="7 days",
            compression="zip",
            format=log_format,
            level=settings.LOG_LEVEL,
            diagnose=False
        )

    return logger
