"""
eduprogress/errors.py
Centralized error rendering for the HTTP adapter

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 400: Invalid input / invalid state transition
- 401: Principal missing
- 403: Access forbidden (ownership / audience scope)
- 404: Resource does not exist
- 409: Duplicate submission
- 422: Request body validation (Pydantic)
- 500: NEVER caused by user input (internal only)
"""
import logging
import uuid
from typing import Optional, Dict, Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from eduprogress.exceptions import EduProgressException

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    SCORE_OUT_OF_RANGE = "SCORE_OUT_OF_RANGE"

    AUTH_REQUIRED = "AUTH_REQUIRED"

    FORBIDDEN = "FORBIDDEN"

    NOT_FOUND = "NOT_FOUND"

    STATE_TRANSITION_INVALID = "STATE_TRANSITION_INVALID"
    DUPLICATE_SUBMISSION = "DUPLICATE_SUBMISSION"

    INTERNAL_ERROR = "INTERNAL_ERROR"


# status code -> human-readable error type
ERROR_MAPPING = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    422: "Validation Error",
    500: "Internal Error",
}


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


def render_error(
    status_code: int,
    message: str,
    code: str,
    details: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    """Build the standard JSON error body."""
    body = ErrorResponse(
        error=ERROR_MAPPING.get(status_code, "Error"),
        message=message,
        code=code,
        details=details,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True)
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain, HTTP, validation and fallback handlers to the app."""

    @app.exception_handler(EduProgressException)
    async def domain_error_handler(request: Request, exc: EduProgressException):
        logger.warning(f"Domain error on {request.url.path}: {exc.code} - {exc.message}")
        return render_error(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        error_details = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return render_error(
            422,
            "Request validation failed",
            ErrorCode.VALIDATION_ERROR,
            {"errors": error_details}
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP exception on {request.url.path}: {exc.detail}")
        return render_error(
            exc.status_code,
            str(exc.detail),
            ErrorCode.INTERNAL_ERROR if exc.status_code >= 500 else ErrorCode.INVALID_INPUT
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] Unhandled exception on {request.url.path}: {type(exc).__name__}: {str(exc)}")
        return render_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
            ErrorCode.INTERNAL_ERROR,
            {"log_id": log_id}
        )
