"""
Exception handlers producing the {"status": "error"} response envelope.
"""

from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ...core.errors import AppError, ValidationError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, errors=None) -> JSONResponse:
    content = {"status": "error", "message": message}
    if errors:
        content["errors"] = errors
    return JSONResponse(status_code=status_code, content=content)


def _field_message(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for domain errors, request validation and anything unexpected."""

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.info(f"Validation failed on {request.method} {request.url.path}: {exc.message}")
        return _error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        log_fn = logger.error if exc.status_code >= 500 else logger.info
        log_fn(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [_field_message(error) for error in exc.errors()]
        logger.info(f"Invalid request body on {request.method} {request.url.path}: {errors}")
        return _error_response(400, ", ".join(errors) or "Invalid request", errors)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler"""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        settings = request.app.state.settings
        message = "Internal server error" if settings.is_production else str(exc)
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": message,
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        )
