"""
Main application entry point for the PPE Detection Service.
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from ppe_api.api.api_v1.api import api_router
from ppe_api.core.config import settings
from ppe_api.core.exceptions import (
    APIError,
    api_error_handler,
    generic_error_handler,
    validation_error_handler
)
from ppe_api.core.logging import setup_logging
from ppe_api.services.artifacts import ArtifactManager
from ppe_api.services.detection import PPEDetectionService


# Setup application logging
setup_logging()


# Startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Handle startup and shutdown events for the application.
    """
    artifact_manager: ArtifactManager = app.state.artifact_manager

    # Startup: begin the periodic sweep of stale generated images
    artifact_manager.start()
    logger.info(f"{settings.PROJECT_NAME} started")
    yield

    # Shutdown: Clean up resources
    logger.info(f"{settings.PROJECT_NAME} shutting down...")
    await artifact_manager.stop()
    app.state.detection_service.shutdown()


def create_app(
    detection_service: PPEDetectionService = None,
    artifact_manager: ArtifactManager = None
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        detection_service: Detection pipeline (built from settings when omitted)
        artifact_manager: Generated image lifecycle manager; defaults to the
            detection service's own manager
    """
    if artifact_manager is None:
        artifact_manager = detection_service.artifacts if detection_service else ArtifactManager()
    if detection_service is None:
        detection_service = PPEDetectionService(artifacts=artifact_manager)
    artifact_manager.ensure_directory()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=settings.PROJECT_DESCRIPTION,
        version=settings.VERSION,
        lifespan=lifespan
    )
    app.state.artifact_manager = artifact_manager
    app.state.detection_service = detection_service

    # Configure CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Custom exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # Performance middleware to log request processing time
    @app.middleware("http")
    async def log_request_time(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time

        logger.debug(f"Request {request.method} {request.url.path} processed in {process_time:.4f}s")
        response.headers["X-Process-Time"] = str(process_time)

        return response

    # Include API router
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # Generated person images, deleted shortly after being served
    app.mount(
        settings.PROCESSED_IMAGES_URL,
        StaticFiles(directory=str(artifact_manager.directory)),
        name="processed-images"
    )

    # Root endpoint
    @app.get("/", status_code=status.HTTP_200_OK, include_in_schema=False)
    async def root():
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "message": "Welcome to the PPE Detection Service",
            "docs_url": "/docs",
            "api_prefix": settings.API_PREFIX
        }

    return app


app = create_app()


if __name__ == "__main__":
    # Use this for development only
    import uvicorn

    uvicorn.run(
        "ppe_api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG_MODE
    )
