"""Error handling and security middleware for the Weather Ensemble API.

Provides:
- Security headers (X-Content-Type-Options, X-Frame-Options, etc.)
- ForecastError -> structured JSON with the error's status code
- Request validation errors -> 400 INVALID_INPUT
- Global exception handler with sanitized responses
"""
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models import ErrorResponse
from ensemble.errors import ForecastError
import logging

logger = logging.getLogger(__name__)

SERVICE_UNAVAILABLE_MESSAGE = "All weather providers are currently unavailable. Please try again later."


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    body = ErrorResponse(error=error, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if request.url.scheme == "https":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


async def forecast_error_handler(request: Request, exc: ForecastError):
    """Map engine errors to their HTTP status with a human-readable message."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        message = SERVICE_UNAVAILABLE_MESSAGE if exc.status_code == 503 else "Internal server error"
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
        message = exc.message
    return error_response(exc.status_code, exc.code, message)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Reject malformed query parameters with a 400 instead of FastAPI's 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        message = f"Invalid parameter '{field}': {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request parameters"
    return error_response(400, "INVALID_INPUT", message)


async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler - never leak internal details."""
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return error_response(500, "INTERNAL_ERROR", "Internal server error")
