"""
Custom exceptions and exception handlers for the PPE Detection Service.
"""
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger


class APIError(Exception):
    """Base class for API exceptions."""

    error_type = "internal_error"

    def __init__(self, status_code: int, message: str, error: str = "Error processing image"):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": self.error,
            "error_type": self.error_type,
            "message": self.message
        }


class ValidationError(APIError):
    """Exception raised for rejected uploads, before any cloud call is made."""

    error_type = "validation_error"

    def __init__(self, message: str = "Invalid request", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, message=message, error="Invalid image upload")


class PayloadTooLargeError(ValidationError):
    """Exception raised when the uploaded file exceeds the size limit."""

    def __init__(self, message: str = "File too large"):
        super().__init__(message=message, status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)


class ExternalServiceError(APIError):
    """Exception raised when the detection backend fails or is unreachable."""

    error_type = "external_service_error"

    def __init__(self, message: str = "Detection service unavailable"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            message=message,
            error="Failed to process image with AWS Rekognition"
        )


class ProcessingError(APIError):
    """Exception raised when the server fails to process a valid image."""

    def __init__(self, message: str = "Error processing image"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            message=message,
            error="Error processing image"
        )


# Exception handlers

async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Handler for custom API exceptions."""
    if exc.status_code >= 500:
        logger.error(f"API Error ({exc.error_type}) on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"API Error ({exc.error_type}) on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for request validation errors."""
    errors = []
    for error in exc.errors():
        # Extract field and error message
        location = " -> ".join([str(loc) for loc in error.get("loc", [])])
        message = error.get("msg", "Validation error")
        errors.append(f"{location}: {message}")

    error_message = "Validation error" if len(errors) == 0 else errors[0]
    logger.warning(f"Validation Error: {', '.join(errors)}")

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error": "Invalid request",
            "error_type": ValidationError.error_type,
            "message": error_message,
            "errors": errors
        }
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.opt(exception=exc).error(f"Unhandled Exception on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "Internal server error",
            "error_type": APIError.error_type,
            "message": "An unexpected error occurred while processing the request"
        }
    )
